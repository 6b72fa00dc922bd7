"""
HTTP adapter for the Edviron collect-request gateway.

Each call opens an ``httpx.AsyncClient`` as a context manager with an
explicit timeout, so the response is always read (or the timeout hit) and
the connection released before the caller continues. Transport failures
and HTTP error codes are mapped onto the GatewayError family; nothing is
retried here.
"""

import logging
from typing import Any, Optional

import httpx

from app.config import Settings
from app.engine.errors import (
    GatewayAuthError,
    GatewayError,
    GatewayNotFoundError,
    GatewayUnavailableError,
    InvalidGatewayResponseError,
    InvalidPaymentRequestError,
)
from app.providers.base import (
    CollectRequest,
    CollectRequestResult,
    CollectRequestStatus,
    PaymentGateway,
    parse_collect_result,
    parse_status_result,
)

logger = logging.getLogger("school_payments.gateway")


class EdvironGateway(PaymentGateway):
    """Talks to the gateway's create-collect-request and collect-request endpoints."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._base_url = settings.gateway_base_url.rstrip("/")
        self._api_key = settings.pg_api_key
        self._name = settings.gateway_name
        self._create_timeout = settings.create_timeout_seconds
        self._poll_timeout = settings.poll_timeout_seconds
        self._transport = transport

    @property
    def name(self) -> str:
        return self._name

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers=self._headers(),
            transport=self._transport,
        )

    async def create_collect_request(self, request: CollectRequest) -> CollectRequestResult:
        body = {
            "school_id": request.school_id,
            "amount": request.amount,
            "callback_url": request.callback_url,
            "sign": request.sign,
        }
        logger.info(
            "Creating collect request: school_id=%s amount=%s callback_url=%s",
            request.school_id,
            request.amount,
            request.callback_url,
        )
        async with self._client(self._create_timeout) as client:
            response = await self._send(client, "POST", "/create-collect-request", json=body)
        data = _json_body(response)
        return parse_collect_result(data)

    async def get_collect_request_status(
        self,
        collect_request_id: str,
        school_id: str,
        sign: str,
    ) -> CollectRequestStatus:
        logger.info("Querying collect request status: collect_request_id=%s", collect_request_id)
        async with self._client(self._poll_timeout) as client:
            response = await self._send(
                client,
                "GET",
                f"/collect-request/{collect_request_id}",
                params={"school_id": school_id, "sign": sign},
            )
        data = _json_body(response)
        return parse_status_result(data)

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("Gateway timeout on %s %s: %s", method, url, e)
            raise GatewayUnavailableError(
                "Payment gateway timeout",
                details="The payment service is currently unavailable. Please try again later.",
            ) from e
        except httpx.HTTPError as e:
            logger.error("Gateway transport error on %s %s: %s", method, url, e)
            raise GatewayUnavailableError(
                "Payment gateway unreachable",
                details="The payment service is currently unavailable. Please try again later.",
            ) from e

        if response.is_success:
            return response

        raise _map_status_error(response)


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise InvalidGatewayResponseError(
            "Gateway returned a non-JSON body",
            details=response.text[:200],
            upstream_status=response.status_code,
        ) from e
    if not isinstance(data, dict):
        raise InvalidGatewayResponseError(
            "Gateway returned an unexpected body",
            details=str(data)[:200],
            upstream_status=response.status_code,
        )
    return data


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or None
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        return str(message) if message else None
    return None


def _map_status_error(response: httpx.Response) -> GatewayError:
    status = response.status_code
    message = _error_message(response)
    logger.error("Gateway responded %d: %s", status, message or "<no message>")

    if status in (401, 403):
        return GatewayAuthError(details="Invalid API credentials", upstream_status=status)
    if status == 404:
        return GatewayNotFoundError(details="The payment gateway endpoint is not found", upstream_status=status)
    if 400 <= status < 500:
        return InvalidPaymentRequestError(
            details=message or "Bad request to payment gateway",
            upstream_status=status,
        )
    return GatewayUnavailableError(
        f"Payment gateway error {status}",
        details=message or "The payment service is currently unavailable. Please try again later.",
        upstream_status=status,
    )
