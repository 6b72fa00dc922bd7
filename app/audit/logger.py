"""
Immutable audit trail for inbound webhooks.

Every webhook delivery, accepted or rejected, gets an append-only
WebhookLog entry with:
  - Payload (the body exactly as received, JSON-serialized)
  - Status (processed, invalid, failed)
  - Collect ID (when the payload named one)
  - Error details (why it was rejected)
  - Received timestamp (UTC)

These records are never modified or deleted, and writing them never
touches OrderStatus.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import WebhookLogStatus
from app.models.order import WebhookLog

logger = logging.getLogger("school_payments.audit")


def _serialize(payload: Any) -> str:
    try:
        return json.dumps(payload, default=str)
    except (TypeError, ValueError):
        return json.dumps({"raw": repr(payload)})


def record_webhook(
    session: AsyncSession,
    payload: Any,
    status: WebhookLogStatus,
    collect_id: Optional[str] = None,
    error_details: Optional[str] = None,
) -> WebhookLog:
    """
    Add a webhook audit entry to the session.

    The caller commits, so a processed entry lands in the same transaction
    as the OrderStatus update it describes.
    """
    entry = WebhookLog(
        collect_id=collect_id,
        payload=_serialize(payload),
        status=status.value,
        error_details=error_details,
        received_at=datetime.now(timezone.utc),
    )
    session.add(entry)
    logger.info(
        "AUDIT | webhook collect_id=%s status=%s | %s",
        collect_id or "-",
        status.value,
        error_details or "",
    )
    return entry


async def record_rejected_webhook(
    session: AsyncSession,
    payload: Any,
    status: WebhookLogStatus,
    collect_id: Optional[str],
    error_details: str,
) -> None:
    """
    Persist an audit entry for a webhook that was not applied.

    Runs after the caller rolled back its own work. A failure to write the
    audit row is logged; the caller still raises its original error.
    """
    try:
        record_webhook(session, payload, status, collect_id=collect_id, error_details=error_details)
        await session.commit()
    except SQLAlchemyError:
        logger.exception("Failed to persist webhook audit entry for collect_id=%s", collect_id or "-")
        await session.rollback()
