"""SQLAlchemy models for school fee payments."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class Order(Base):
    """
    The payment intent.

    Created once by the payment initiator and never deleted. ``status``
    mirrors the settlement record's canonical status; the order never
    references its OrderStatus directly.
    """

    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=_new_id)
    school_id = Column(String(100), nullable=False, index=True)
    trustee_id = Column(String(100), nullable=False)
    student_name = Column(String(200), nullable=False)
    student_id = Column(String(100), nullable=True)
    student_email = Column(String(200), nullable=True)
    gateway_name = Column(String(50), nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    status = Column(String(20), nullable=False, default="pending")

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class OrderStatus(Base):
    """
    Mutable settlement record for one Order, keyed by the gateway's collect id.

    ``status_source`` names the channel that last set ``status`` so lower-trust
    channels cannot overwrite a terminal value set above them. ``version`` is
    checked on every UPDATE; a concurrent writer that committed first makes
    the flush fail instead of silently losing its update.
    """

    __tablename__ = "order_statuses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    collect_id = Column(String(100), nullable=False, unique=True, index=True)
    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)

    order_amount = Column(Float, nullable=False)
    transaction_amount = Column(Float, nullable=True)
    payment_mode = Column(String(50), nullable=True)
    payment_details = Column(Text, nullable=True)
    bank_reference = Column(String(100), nullable=True)
    payment_message = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    status_source = Column(String(20), nullable=True)
    error_message = Column(Text, nullable=True, default="")
    payment_time = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __mapper_args__ = {"version_id_col": version}


class WebhookLog(Base):
    """
    Immutable record of an inbound webhook delivery.

    Every payload gets an entry, including rejected ones. These are
    append-only and never modified.
    """

    __tablename__ = "webhook_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    collect_id = Column(String(100), nullable=True, index=True)
    payload = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="processed", index=True)
    error_details = Column(Text, nullable=True)
    received_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
