"""
Order store: persistence and locked lookups for Order / OrderStatus.

Reads that precede a write go through ``find_status(..., lock=True)``, which
issues ``SELECT ... FOR UPDATE`` (a row lock where the backend supports it)
and refreshes the identity map so the row is never stale. Commits go
through ``commit_update``, which turns a version-check failure into
ConcurrentUpdateError: the guard that catches a concurrent writer on
backends without row locks.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.engine.errors import ConcurrentUpdateError
from app.models.order import Order, OrderStatus

logger = logging.getLogger("school_payments.store")


async def find_status(
    session: AsyncSession,
    collect_id: Optional[str] = None,
    order_id: Optional[str] = None,
    lock: bool = False,
) -> Optional[OrderStatus]:
    """
    Look up an OrderStatus by collect id, falling back to order id.

    Args:
        session: Database session.
        collect_id: Gateway collect-request id (hot path).
        order_id: Owning Order id, used when collect_id is absent or unknown.
        lock: Take a row lock and refresh the loaded instance.
    """
    for column, value in ((OrderStatus.collect_id, collect_id), (OrderStatus.order_id, order_id)):
        if not value:
            continue
        stmt = select(OrderStatus).where(column == value).order_by(OrderStatus.id).limit(1)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        record = (await session.execute(stmt)).scalars().first()
        if record is not None:
            return record
    return None


async def propagate_to_order(session: AsyncSession, record: OrderStatus) -> Optional[Order]:
    """
    Mirror the settlement record's status onto its owning Order.

    Autoflush is off for the lookup, so the pending OrderStatus write is only
    flushed by ``commit_update`` and a version conflict surfaces there.
    """
    with session.no_autoflush:
        order = await session.get(Order, record.order_id, with_for_update=True, populate_existing=True)
    if order is None:
        logger.warning("OrderStatus %s references missing order %s", record.collect_id, record.order_id)
        return None
    if order.status != record.status:
        order.status = record.status
        order.updated_at = datetime.now(timezone.utc)
    return order


async def commit_update(session: AsyncSession, collect_id: str) -> None:
    """
    Commit a read-modify-write on an OrderStatus.

    Raises:
        ConcurrentUpdateError: Another writer committed the same row first.
    """
    try:
        await session.commit()
    except StaleDataError as e:
        await session.rollback()
        logger.warning("Concurrent update lost for collect_id=%s: %s", collect_id, e)
        raise ConcurrentUpdateError(
            f"OrderStatus {collect_id} was modified concurrently",
            details={"collect_id": collect_id},
        ) from e
    except SQLAlchemyError:
        await session.rollback()
        raise
