"""
Transaction status endpoint.

GET /transactions/transaction-status/{collect_id} - Current settlement record for a collect request.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_session
from app.engine.errors import TransactionNotFoundError
from app.engine.store import find_status
from app.models.order import OrderStatus

router = APIRouter(prefix="/transactions", tags=["transactions"])


class TransactionStatus(BaseModel):
    collect_id: str
    order_id: str
    order_amount: float
    transaction_amount: Optional[float]
    payment_mode: Optional[str]
    payment_details: Optional[str]
    bank_reference: Optional[str]
    payment_message: Optional[str]
    status: str
    status_source: Optional[str]
    error_message: Optional[str]
    payment_time: Optional[str]
    updated_at: Optional[str]

    model_config = {"from_attributes": True}


def _status_to_detail(s: OrderStatus) -> TransactionStatus:
    return TransactionStatus(
        collect_id=s.collect_id,
        order_id=s.order_id,
        order_amount=s.order_amount,
        transaction_amount=s.transaction_amount,
        payment_mode=s.payment_mode,
        payment_details=s.payment_details,
        bank_reference=s.bank_reference,
        payment_message=s.payment_message,
        status=s.status,
        status_source=s.status_source,
        error_message=s.error_message,
        payment_time=s.payment_time.isoformat() if s.payment_time else None,
        updated_at=s.updated_at.isoformat() if s.updated_at else None,
    )


@router.get("/transaction-status/{collect_id}", response_model=TransactionStatus)
async def get_transaction_status(collect_id: str, session: AsyncSession = Depends(get_session)):
    """Read-only lookup of the current OrderStatus for a collect id."""
    record = await find_status(session, collect_id=collect_id)
    if not record:
        raise TransactionNotFoundError(details=f"No transaction for collect id {collect_id}")
    return _status_to_detail(record)
