"""
Trust-ordered status precedence.

Three channels write the same OrderStatus record:

  webhook  (authenticated push)      trust 3
  poller   (signed status query)     trust 2
  callback (browser redirect params) trust 1

Rules, applied in order:
  1. A webhook write always applies.
  2. Any write applies while the current status is pending.
  3. A write from a channel with strictly higher trust than the channel
     that set the current status always applies.
  4. Otherwise the current status is terminal and was set by an equal or
     higher trust channel: the write applies only if it agrees with the
     current status. Such a confirming write changes no field.

This is the only place these rules live; every ingestion path goes through
``apply_update``.
"""

import logging
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Optional

from app.engine.normalizer import normalize_status
from app.models.enums import Channel, PaymentStatus
from app.models.order import OrderStatus

logger = logging.getLogger("school_payments.precedence")


@dataclass
class StatusUpdate:
    """
    A proposed write to an OrderStatus.

    ``None`` means "leave this field as it is". Fields named in ``clear``
    are set to NULL instead.
    """

    status: PaymentStatus
    order_amount: Optional[float] = None
    transaction_amount: Optional[float] = None
    payment_mode: Optional[str] = None
    payment_details: Optional[str] = None
    bank_reference: Optional[str] = None
    payment_message: Optional[str] = None
    error_message: Optional[str] = None
    payment_time: Optional[datetime] = None
    clear: tuple[str, ...] = ()


@dataclass
class PrecedenceDecision:
    """Whether a write may proceed, and why."""

    applied: bool
    reason: str
    takes_source: bool = True


def _channel_or_none(value: Optional[str]) -> Optional[Channel]:
    try:
        return Channel(value) if value else None
    except ValueError:
        return None


def decide(
    current_status: Optional[str],
    current_source: Optional[str],
    incoming: PaymentStatus,
    channel: Channel,
) -> PrecedenceDecision:
    """Decide whether ``channel`` may write ``incoming`` over the current state."""
    current = normalize_status(current_status)
    source = _channel_or_none(current_source)

    if channel is Channel.WEBHOOK:
        return PrecedenceDecision(True, "webhook is authoritative")

    if not current.is_terminal:
        return PrecedenceDecision(True, "current status is pending")

    if source is None or channel.trust > source.trust:
        return PrecedenceDecision(True, f"{channel.value} outranks {source.value if source else 'unknown source'}")

    if incoming == current:
        return PrecedenceDecision(True, "agrees with current terminal status", takes_source=False)

    return PrecedenceDecision(
        False,
        f"{channel.value} may not replace {current.value} set by {source.value} with {incoming.value}",
    )


def apply_update(record: OrderStatus, update: StatusUpdate, channel: Channel) -> PrecedenceDecision:
    """
    Apply ``update`` to ``record`` if the trust rules allow it.

    Rejected updates leave every field untouched. The caller is responsible
    for holding the row lock and committing.
    """
    decision = decide(record.status, record.status_source, update.status, channel)
    if not decision.applied:
        logger.info(
            "Rejected %s write for collect_id=%s: %s",
            channel.value,
            record.collect_id,
            decision.reason,
        )
        return decision

    if not decision.takes_source:
        logger.info("Confirmed %s for collect_id=%s via %s", record.status, record.collect_id, channel.value)
        return decision

    for f in fields(update):
        if f.name in ("status", "clear"):
            continue
        value = getattr(update, f.name)
        if value is not None:
            setattr(record, f.name, value)
    for name in update.clear:
        setattr(record, name, None)

    record.status = update.status.value
    record.status_source = channel.value
    record.updated_at = datetime.now(timezone.utc)

    logger.info(
        "Applied %s write for collect_id=%s: status=%s (%s)",
        channel.value,
        record.collect_id,
        record.status,
        decision.reason,
    )
    return decision
