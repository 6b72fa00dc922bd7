"""
Callback ingestor: handles the gateway's browser redirect.

Redirect parameters are attacker-influenceable, so an inline status only
ever moves a pending record (or agrees with an existing terminal one).
When that does not settle the payment, the gateway is polled. Whatever
happens internally, the payer is always redirected to the frontend; a
failure degrades the reported status to pending.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.engine.errors import InvalidRequestError
from app.engine.normalizer import normalize_status
from app.engine.poller import StatusPoller
from app.engine.precedence import StatusUpdate, apply_update
from app.engine.store import commit_update, find_status, propagate_to_order
from app.models.enums import Channel, PaymentStatus

logger = logging.getLogger("school_payments.callback")

REDIRECT_PAGE = "/redirect.html"


@dataclass
class RedirectDirective:
    """Where to send the payer's browser, and what to tell the frontend."""

    location: str
    status: PaymentStatus
    order_id: str
    collect_id: str


def clean_id(value: Optional[str]) -> str:
    """Strip whitespace and anything after a stray '?' the gateway appended."""
    if not value:
        return ""
    return str(value).split("?", 1)[0].strip()


def build_callback_update(status: PaymentStatus) -> StatusUpdate:
    update = StatusUpdate(status=status)
    if status is PaymentStatus.SUCCESS:
        update.payment_message = "Payment completed successfully"
        update.payment_time = datetime.now(timezone.utc)
    elif status is PaymentStatus.FAILED:
        update.error_message = "Payment failed"
        update.payment_message = "Payment transaction failed"
    elif status is PaymentStatus.CANCELLED:
        update.error_message = "Payment cancelled by user"
        update.payment_message = "Payment transaction cancelled"
    if status is not PaymentStatus.SUCCESS:
        update.clear = ("payment_time",)
    return update


class CallbackIngestor:
    """Reconciles what a browser redirect tells us, then picks a redirect target."""

    def __init__(self, poller: StatusPoller, settings: Settings):
        self._poller = poller
        self._settings = settings

    def redirect_for(self, order_id: str, collect_id: str, status: PaymentStatus) -> RedirectDirective:
        query = urlencode({
            "orderId": order_id or collect_id,
            "status": status.value,
            "EdvironCollectRequestId": collect_id,
        })
        location = f"{self._settings.frontend_url.rstrip('/')}{REDIRECT_PAGE}?{query}"
        return RedirectDirective(location=location, status=status, order_id=order_id, collect_id=collect_id)

    async def handle(
        self,
        session: AsyncSession,
        order_id: Optional[str],
        collect_id: Optional[str],
        status: Optional[str] = None,
    ) -> RedirectDirective:
        """
        Process one callback.

        Raises:
            InvalidRequestError: Neither identifier was supplied.
        """
        order_id = clean_id(order_id)
        collect_id = clean_id(collect_id)
        if not order_id and not collect_id:
            raise InvalidRequestError("Missing collect request ID")

        try:
            final, collect_id = await self._reconcile(session, order_id, collect_id, status)
        except Exception:
            logger.exception(
                "Callback reconciliation failed for order_id=%s collect_id=%s; redirecting as pending",
                order_id or "-",
                collect_id or "-",
            )
            await session.rollback()
            final = PaymentStatus.PENDING

        return self.redirect_for(order_id, collect_id or order_id, final)

    async def _reconcile(
        self,
        session: AsyncSession,
        order_id: str,
        collect_id: str,
        inline_status: Optional[str],
    ) -> tuple[PaymentStatus, str]:
        record = await find_status(session, collect_id=collect_id, order_id=order_id, lock=True)
        if record is not None:
            collect_id = record.collect_id
            order_id = order_id or record.order_id

        current = PaymentStatus(record.status) if record is not None else PaymentStatus.PENDING

        # Step 1: inline status, lowest trust.
        if inline_status and record is not None:
            update = build_callback_update(normalize_status(inline_status))
            decision = apply_update(record, update, Channel.CALLBACK)
            if decision.applied:
                await propagate_to_order(session, record)
            current = PaymentStatus(record.status)
            await commit_update(session, collect_id)
        else:
            # Release the row lock before any network call.
            await session.rollback()

        if current.is_terminal:
            return current, collect_id

        # Step 2: authoritative poll.
        poll_id = collect_id or order_id
        result = await self._poller.poll(session, poll_id, order_id=order_id or None)
        if result.conclusive and result.status is not None:
            return result.status, collect_id or poll_id

        # Step 3: nothing settled it.
        logger.info("Callback for %s left pending (poll inconclusive)", poll_id)
        return current, collect_id or poll_id
