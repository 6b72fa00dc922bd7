"""Integration tests for payment initiation."""

import json

import jwt
import pytest
from sqlalchemy import func, select

from app.engine.errors import (
    GatewayUnavailableError,
    InvalidGatewayResponseError,
    InvalidPaymentRequestError,
    InvalidRequestError,
)
from app.models.order import Order, OrderStatus
from tests.factories import PG_KEY


async def _count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_create_payment(db_session, initiator, gateway):
    """Happy path: pending Order and OrderStatus, hosted URL returned."""
    gateway.collect_response = {"collect_request_id": "abc123", "collect_request_url": "https://pay/abc123"}

    result = await initiator.create_payment(db_session, 1000, {"name": "Asha Rao"}, trustee_id="user-7")

    assert result.redirect_url == "https://pay/abc123"
    assert result.collect_request_id == "abc123"

    order = await db_session.get(Order, result.order_id)
    assert order.status == "pending"
    assert order.amount == 1000.0
    assert order.school_id == "school-001"
    assert order.trustee_id == "user-7"
    assert order.student_email == "asharao@example.com"

    record = (await db_session.execute(select(OrderStatus))).scalar_one()
    assert record.collect_id == "abc123"
    assert record.order_id == order.id
    assert record.order_amount == 1000.0
    assert record.status == "pending"
    assert record.status_source is None
    details = json.loads(record.payment_details)
    assert details["preferred_mode"] == "QR"
    assert details["reference_id"].startswith("ref-")


@pytest.mark.asyncio
async def test_collect_request_is_signed(db_session, initiator, gateway):
    result = await initiator.create_payment(db_session, "250.5", {"name": "Asha"})

    request = gateway.collect_requests[0]
    assert request.school_id == "school-001"
    assert request.amount == "250.50"
    assert request.callback_url == f"http://api.test/api/payments/callback?orderId={result.order_id}"
    claims = jwt.decode(request.sign, PG_KEY, algorithms=["HS256"])
    assert claims == {"school_id": "school-001", "amount": "250.50", "callback_url": request.callback_url}


@pytest.mark.asyncio
async def test_phone_number_prefers_upi(db_session, initiator):
    await initiator.create_payment(db_session, 100, {"name": "Asha"}, phone_number="9999999999")

    record = (await db_session.execute(select(OrderStatus))).scalar_one()
    details = json.loads(record.payment_details)
    assert details["preferred_mode"] == "UPI"
    assert details["phone"] == "9999999999"


class TestRejectedBeforeGateway:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount,student", [
        (0, {"name": "Asha"}),
        (-10, {"name": "Asha"}),
        ("abc", {"name": "Asha"}),
        (None, {"name": "Asha"}),
        (100, None),
        (100, {"name": ""}),
    ])
    async def test_invalid_request(self, db_session, initiator, gateway, amount, student):
        with pytest.raises(InvalidRequestError):
            await initiator.create_payment(db_session, amount, student)

        assert gateway.collect_requests == []
        assert await _count(db_session, Order) == 0
        assert await _count(db_session, OrderStatus) == 0


class TestGatewayFailures:
    @pytest.mark.asyncio
    async def test_unavailable_leaves_order_pending(self, db_session, initiator, gateway):
        gateway.create_error = GatewayUnavailableError()

        with pytest.raises(GatewayUnavailableError):
            await initiator.create_payment(db_session, 1000, {"name": "Asha"})

        orders = (await db_session.execute(select(Order))).scalars().all()
        assert len(orders) == 1
        assert orders[0].status == "pending"
        assert await _count(db_session, OrderStatus) == 0

    @pytest.mark.asyncio
    async def test_rejected_request_surfaces(self, db_session, initiator, gateway):
        gateway.create_error = InvalidPaymentRequestError(details="amount too low", upstream_status=400)

        with pytest.raises(InvalidPaymentRequestError) as exc_info:
            await initiator.create_payment(db_session, 1, {"name": "Asha"})

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_collect_id(self, db_session, initiator, gateway):
        gateway.collect_response = {"collect_request_url": "https://pay/abc123"}

        with pytest.raises(InvalidGatewayResponseError):
            await initiator.create_payment(db_session, 1000, {"name": "Asha"})

        assert await _count(db_session, OrderStatus) == 0

    @pytest.mark.asyncio
    async def test_missing_url_still_records_collect_request(self, db_session, initiator, gateway):
        gateway.collect_response = {"collect_request_id": "abc123"}

        with pytest.raises(InvalidGatewayResponseError):
            await initiator.create_payment(db_session, 1000, {"name": "Asha"})

        record = (await db_session.execute(select(OrderStatus))).scalar_one()
        assert record.collect_id == "abc123"
        assert record.status == "pending"
