"""
Webhook ingestor: applies the gateway's authenticated settlement push.

Order of operations matters:

  1. Shape check (order_info object, sign present)
  2. Signature verified before any order_info field is read
  3. order_info validated as a whole, so a partial payload is never written
  4. OrderStatus loaded under row lock by collect id; unknown ids are 404
  5. Every mutable field overwritten with webhook trust, Order status mirrored

Re-delivering the same payload re-applies identical values, so duplicates
converge on the same record state without dedup bookkeeping. Failures are
never degraded: each raises so the gateway's own retry policy re-delivers.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.logger import record_rejected_webhook, record_webhook
from app.engine.errors import (
    InvalidWebhookError,
    PaymentError,
    UntrustedWebhookError,
    WebhookOrderNotFoundError,
)
from app.engine.normalizer import normalize_status
from app.engine.precedence import StatusUpdate, apply_update
from app.engine.store import commit_update, find_status, propagate_to_order
from app.models.enums import Channel, PaymentStatus, WebhookLogStatus
from app.providers.signing import SignatureService

logger = logging.getLogger("school_payments.webhook")

SIGNED_ID_CLAIMS = ("order_id", "collect_id", "collect_request_id")


class WebhookOrderInfo(BaseModel):
    """The ``order_info`` block of a settlement webhook."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    order_id: str = Field(min_length=1)
    order_amount: float
    transaction_amount: float
    status: str = Field(min_length=1)
    gateway: Optional[str] = None
    bank_reference: Optional[str] = None
    payment_mode: Optional[str] = None
    payment_details: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("payment_details", "payemnt_details"),
    )
    payment_message: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("payment_message", "Payment_message"),
    )
    payment_time: Optional[datetime] = None
    error_message: Optional[str] = None

    @field_validator("order_id", "status", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("payment_details", mode="before")
    @classmethod
    def _details_to_text(cls, value: Any) -> Any:
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return value

    @field_validator("payment_time", mode="before")
    @classmethod
    def _blank_time(cls, value: Any) -> Any:
        return None if value in ("", None) else value

    @field_validator("payment_time")
    @classmethod
    def _aware_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


@dataclass
class WebhookReceipt:
    """Result of an applied webhook."""

    order_id: str
    status: PaymentStatus
    applied: bool


def build_webhook_update(info: WebhookOrderInfo) -> StatusUpdate:
    """Every mutable field, missing optionals written as empty values."""
    return StatusUpdate(
        status=normalize_status(info.status),
        order_amount=info.order_amount,
        transaction_amount=info.transaction_amount,
        payment_mode=info.payment_mode or "",
        payment_details=info.payment_details or "",
        bank_reference=info.bank_reference or "",
        payment_message=info.payment_message or "",
        error_message=info.error_message or "",
        payment_time=info.payment_time,
        clear=("payment_time",) if info.payment_time is None else (),
    )


class WebhookIngestor:
    """Verifies and applies settlement webhooks."""

    def __init__(self, signer: SignatureService):
        self._signer = signer

    def _parse(self, payload: Any) -> tuple[dict[str, Any], WebhookOrderInfo]:
        if not isinstance(payload, dict):
            raise InvalidWebhookError(details="Webhook body must be a JSON object")
        order_info = payload.get("order_info")
        sign = payload.get("sign")
        if not isinstance(order_info, dict) or not sign:
            raise InvalidWebhookError(details="order_info and sign are required")

        claims = self._signer.verify_webhook(sign)

        try:
            info = WebhookOrderInfo.model_validate(order_info)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise InvalidWebhookError(details=f"Invalid order_info fields: {', '.join(fields)}") from e

        for claim in SIGNED_ID_CLAIMS:
            signed_id = claims.get(claim)
            if signed_id is not None and str(signed_id) != info.order_id:
                raise UntrustedWebhookError(details="Signature does not cover this order")

        return claims, info

    async def ingest(self, session: AsyncSession, payload: Any) -> WebhookReceipt:
        """
        Verify and apply one webhook delivery.

        Raises:
            InvalidWebhookError: Malformed payload.
            UntrustedWebhookError: Signature failed verification.
            WebhookOrderNotFoundError: Unknown collect id.
            ConcurrentUpdateError: Lost a race with another writer.
        """
        collect_id: Optional[str] = None
        try:
            _, info = self._parse(payload)
            collect_id = info.order_id

            record = await find_status(session, collect_id=collect_id, lock=True)
            if record is None:
                raise WebhookOrderNotFoundError(details=f"No collect request {collect_id}")

            decision = apply_update(record, build_webhook_update(info), Channel.WEBHOOK)
            await propagate_to_order(session, record)
            record_webhook(session, payload, WebhookLogStatus.PROCESSED, collect_id=collect_id)
            final = PaymentStatus(record.status)
            await commit_update(session, collect_id)
        except PaymentError as e:
            await session.rollback()
            log_status = (
                WebhookLogStatus.INVALID
                if isinstance(e, (InvalidWebhookError, UntrustedWebhookError))
                else WebhookLogStatus.FAILED
            )
            logger.warning("Webhook rejected (collect_id=%s): %s %s", collect_id or "-", e.error, e.details)
            await record_rejected_webhook(session, payload, log_status, collect_id, f"{e.error}: {e.details}")
            raise
        except Exception as e:
            logger.exception("Webhook processing failed (collect_id=%s)", collect_id or "-")
            await session.rollback()
            await record_rejected_webhook(session, payload, WebhookLogStatus.FAILED, collect_id, str(e))
            raise

        logger.info("Webhook processed for collect_id=%s: status=%s", collect_id, final.value)
        return WebhookReceipt(order_id=collect_id, status=final, applied=decision.applied)
