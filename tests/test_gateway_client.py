"""Tests for the HTTP gateway adapter, driven through httpx.MockTransport."""

import json

import httpx
import pytest

from app.engine.errors import (
    GatewayAuthError,
    GatewayNotFoundError,
    GatewayUnavailableError,
    InvalidGatewayResponseError,
    InvalidPaymentRequestError,
)
from app.providers.base import CollectRequest
from app.providers.edviron import EdvironGateway


def _gateway(settings, handler) -> EdvironGateway:
    return EdvironGateway(settings, transport=httpx.MockTransport(handler))


def _request() -> CollectRequest:
    return CollectRequest(school_id="school-001", amount="1000.00", callback_url="http://api.test/cb", sign="tok")


@pytest.mark.asyncio
async def test_create_collect_request_sends_signed_body(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"collect_request_id": "abc123", "collect_request_url": "https://pay/abc123"})

    result = await _gateway(settings, handler).create_collect_request(_request())

    assert seen["url"] == "https://gateway.test/erp/create-collect-request"
    assert seen["auth"] == "Bearer test-api-key"
    assert seen["body"] == {
        "school_id": "school-001",
        "amount": "1000.00",
        "callback_url": "http://api.test/cb",
        "sign": "tok",
    }
    assert result.collect_request_id == "abc123"
    assert result.payment_url == "https://pay/abc123"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"id": "abc123", "Collect_request_url": "https://pay/abc123"},
    {"collect_request_id": "abc123", "payment_url": "https://pay/abc123"},
    {"collect_request_id": "abc123", "redirect_url": "https://pay/abc123"},
])
async def test_response_aliases(settings, body):
    result = await _gateway(settings, lambda r: httpx.Response(200, json=body)).create_collect_request(_request())
    assert result.collect_request_id == "abc123"
    assert result.payment_url == "https://pay/abc123"


@pytest.mark.asyncio
async def test_alias_order_prefers_collect_request_url(settings):
    body = {"collect_request_id": "abc123", "collect_request_url": "https://pay/a", "redirect_url": "https://pay/b"}
    result = await _gateway(settings, lambda r: httpx.Response(200, json=body)).create_collect_request(_request())
    assert result.payment_url == "https://pay/a"


@pytest.mark.asyncio
@pytest.mark.parametrize("status,error", [
    (400, InvalidPaymentRequestError),
    (422, InvalidPaymentRequestError),
    (401, GatewayAuthError),
    (403, GatewayAuthError),
    (404, GatewayNotFoundError),
    (500, GatewayUnavailableError),
    (503, GatewayUnavailableError),
])
async def test_http_error_mapping(settings, status, error):
    gateway = _gateway(settings, lambda r: httpx.Response(status, json={"message": "nope"}))
    with pytest.raises(error) as exc_info:
        await gateway.create_collect_request(_request())
    assert exc_info.value.upstream_status == status


@pytest.mark.asyncio
async def test_bad_request_carries_gateway_message(settings):
    gateway = _gateway(settings, lambda r: httpx.Response(400, json={"message": "amount too low"}))
    with pytest.raises(InvalidPaymentRequestError) as exc_info:
        await gateway.create_collect_request(_request())
    assert exc_info.value.details == "amount too low"
    assert exc_info.value.retriable is False


@pytest.mark.asyncio
async def test_timeout_is_unavailable(settings):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(GatewayUnavailableError) as exc_info:
        await _gateway(settings, handler).create_collect_request(_request())
    assert exc_info.value.retriable is True


@pytest.mark.asyncio
async def test_connection_error_is_unavailable(settings):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GatewayUnavailableError):
        await _gateway(settings, handler).create_collect_request(_request())


@pytest.mark.asyncio
async def test_non_json_body_is_invalid_response(settings):
    gateway = _gateway(settings, lambda r: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(InvalidGatewayResponseError):
        await gateway.create_collect_request(_request())


@pytest.mark.asyncio
async def test_status_query(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"status": "SUCCESS", "amount": "1020.5"})

    result = await _gateway(settings, handler).get_collect_request_status("abc123", "school-001", "tok")

    assert seen["path"] == "/erp/collect-request/abc123"
    assert seen["params"] == {"school_id": "school-001", "sign": "tok"}
    assert result.status == "SUCCESS"
    assert result.amount == 1020.5
