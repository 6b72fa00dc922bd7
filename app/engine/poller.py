"""
Status poller: asks the gateway for the authoritative state of a collect request.

The gateway call happens first, without any row lock held; only then is
the OrderStatus loaded under lock and updated through the precedence rules
with poller trust. Any gateway or parsing failure makes the poll
inconclusive rather than raising, so the callback path can fall back to
pending.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.engine.errors import GatewayError, SigningError
from app.engine.normalizer import normalize_status
from app.engine.precedence import StatusUpdate, apply_update
from app.engine.store import commit_update, find_status, propagate_to_order
from app.models.enums import Channel, PaymentStatus
from app.providers.base import CollectRequestStatus, PaymentGateway
from app.providers.signing import SignatureService

logger = logging.getLogger("school_payments.poller")


@dataclass
class PollResult:
    """Outcome of one status poll."""

    conclusive: bool
    status: Optional[PaymentStatus] = None
    applied: bool = False
    raw_status: Optional[str] = None


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def build_poll_update(status: PaymentStatus, reply: CollectRequestStatus) -> StatusUpdate:
    """Translate a gateway status reply into the fields the poller may write."""
    update = StatusUpdate(status=status, transaction_amount=reply.amount)
    if status is PaymentStatus.SUCCESS:
        update.payment_message = reply.payment_message or "Payment verified successfully"
        update.payment_time = _parse_time(reply.payment_time) or datetime.now(timezone.utc)
        update.error_message = ""
    elif status is PaymentStatus.FAILED:
        update.payment_message = reply.payment_message or "Payment verification failed"
        update.error_message = reply.error_message or "Payment verification failed"
    elif status is PaymentStatus.CANCELLED:
        update.payment_message = reply.payment_message or "Payment cancelled"
        update.error_message = reply.error_message or "Payment cancelled"
    if status is not PaymentStatus.SUCCESS:
        update.clear = ("payment_time",)
    return update


class StatusPoller:
    """Polls the gateway's status endpoint and applies the answer."""

    def __init__(self, gateway: PaymentGateway, signer: SignatureService, settings: Settings):
        self._gateway = gateway
        self._signer = signer
        self._settings = settings

    async def fetch(self, collect_request_id: str, school_id: Optional[str] = None) -> Optional[CollectRequestStatus]:
        """Query the gateway; returns None when the answer is unusable."""
        school = school_id or self._settings.school_id
        try:
            sign = self._signer.sign_status_query(school, collect_request_id)
            reply = await self._gateway.get_collect_request_status(collect_request_id, school, sign)
        except (GatewayError, SigningError) as e:
            logger.warning("Status poll for %s inconclusive: %s", collect_request_id, e)
            return None

        if not reply.status:
            logger.warning("Status poll for %s returned no status: %s", collect_request_id, reply.raw)
            return None
        return reply

    async def poll(
        self,
        session: AsyncSession,
        collect_request_id: str,
        order_id: Optional[str] = None,
        school_id: Optional[str] = None,
    ) -> PollResult:
        """
        Poll the gateway and reconcile the matching OrderStatus, if any.

        Storage errors and concurrent-update conflicts propagate; gateway
        failures do not.
        """
        reply = await self.fetch(collect_request_id, school_id)
        if reply is None:
            return PollResult(conclusive=False)

        status = normalize_status(reply.status)
        record = await find_status(session, collect_id=collect_request_id, order_id=order_id, lock=True)
        if record is None:
            logger.info("Status poll for %s: no local record, status=%s", collect_request_id, status.value)
            await session.rollback()
            return PollResult(conclusive=True, status=status, raw_status=reply.status)

        decision = apply_update(record, build_poll_update(status, reply), Channel.POLLER)
        if decision.applied:
            await propagate_to_order(session, record)
        collect_id = record.collect_id
        final = PaymentStatus(record.status)
        await commit_update(session, collect_id)

        return PollResult(
            conclusive=True,
            status=final,
            applied=decision.applied,
            raw_status=reply.status,
        )
