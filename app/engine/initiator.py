"""
Payment initiator: opens a collect request for a school fee.

The flow for each request:

  1. Validation (amount, student name); rejects before any I/O
  2. Order created and committed with status pending
  3. Collect request signed and sent to the gateway
  4. OrderStatus created pending, keyed by the gateway's collect id

The Order is committed before the gateway call so no transaction is held
open across the network. If the gateway fails, the Order simply stays
pending. If the gateway answers with a collect id but no payment URL, the
OrderStatus is still created so the poller or a webhook can settle it.
"""

import json
import logging
import random
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.engine.errors import InvalidGatewayResponseError, InvalidRequestError
from app.engine.validation import check_payment_request, complete_student_info
from app.models.enums import PaymentStatus
from app.models.order import Order, OrderStatus
from app.providers.base import CollectRequest, PaymentGateway
from app.providers.signing import SignatureService, format_amount

logger = logging.getLogger("school_payments.initiator")

CALLBACK_PATH = "/api/payments/callback"


@dataclass
class PaymentInitiation:
    """What the caller needs to send the payer to the gateway."""

    redirect_url: str
    collect_request_id: str
    order_id: str


def _reference_id() -> str:
    return f"ref-{int(time.time() * 1000)}-{random.randint(0, 999)}"


class PaymentInitiator:
    """Creates Orders and their collect requests."""

    def __init__(self, gateway: PaymentGateway, signer: SignatureService, settings: Settings):
        self._gateway = gateway
        self._signer = signer
        self._settings = settings

    def callback_url(self, order_id: str) -> str:
        return f"{self._settings.app_url.rstrip('/')}{CALLBACK_PATH}?orderId={order_id}"

    async def create_payment(
        self,
        session: AsyncSession,
        amount: Any,
        student_info: Any,
        phone_number: Optional[str] = None,
        trustee_id: Optional[str] = None,
    ) -> PaymentInitiation:
        """
        Create an Order and open a collect request for it.

        Args:
            session: Database session.
            amount: Fee amount, must be > 0.
            student_info: ``{"name": ..., "id"?: ..., "email"?: ...}``.
            phone_number: Optional payer phone, recorded for the payment mode hint.
            trustee_id: Initiating user; a random id is used when absent.

        Returns:
            PaymentInitiation with the hosted payment URL.

        Raises:
            InvalidRequestError: Bad amount or missing student name.
            GatewayError: Any gateway failure; the Order stays pending.
        """
        result = check_payment_request(amount, student_info)
        if not result.valid:
            raise InvalidRequestError(result.message)

        student = complete_student_info(student_info)
        settings = self._settings

        order = Order(
            id=uuid.uuid4().hex,
            school_id=settings.school_id,
            trustee_id=trustee_id or str(uuid.uuid4()),
            student_name=student.name,
            student_id=student.id,
            student_email=student.email,
            gateway_name=settings.gateway_name,
            amount=result.amount,
            currency=settings.currency,
            status=PaymentStatus.PENDING.value,
        )
        session.add(order)
        await session.commit()
        logger.info("Order %s created: amount=%.2f %s", order.id, order.amount, order.currency)

        callback_url = self.callback_url(order.id)
        sign = self._signer.sign_collect_request(settings.school_id, result.amount, callback_url)
        request = CollectRequest(
            school_id=settings.school_id,
            amount=format_amount(result.amount),
            callback_url=callback_url,
            sign=sign,
        )

        response = await self._gateway.create_collect_request(request)

        if not response.collect_request_id:
            logger.error("Gateway response for order %s has no collect id: %s", order.id, response.raw)
            raise InvalidGatewayResponseError(details="Collect request id not found in response")

        session.add(OrderStatus(
            collect_id=response.collect_request_id,
            order_id=order.id,
            order_amount=result.amount,
            status=PaymentStatus.PENDING.value,
            payment_details=json.dumps({
                "reference_id": _reference_id(),
                "phone": phone_number or "",
                "preferred_mode": "UPI" if phone_number else "QR",
                "created_at": datetime.now(timezone.utc).isoformat(),
            }),
        ))
        await session.commit()

        if not response.payment_url:
            logger.error(
                "Gateway response for order %s has no payment URL (collect_id=%s): %s",
                order.id,
                response.collect_request_id,
                response.raw,
            )
            raise InvalidGatewayResponseError(details="Payment URL not found in response")

        logger.info(
            "Collect request %s opened for order %s",
            response.collect_request_id,
            order.id,
        )
        return PaymentInitiation(
            redirect_url=response.payment_url,
            collect_request_id=response.collect_request_id,
            order_id=order.id,
        )
