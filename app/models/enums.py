"""Enumerations for the payment reconciliation domain model."""

from enum import Enum


class PaymentStatus(str, Enum):
    """Canonical settlement states. The only status vocabulary stored."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class Channel(str, Enum):
    """Ingestion channels that may write an OrderStatus, ordered by trust."""

    CALLBACK = "callback"
    POLLER = "poller"
    WEBHOOK = "webhook"

    @property
    def trust(self) -> int:
        return _TRUST[self]


_TRUST = {
    Channel.CALLBACK: 1,
    Channel.POLLER: 2,
    Channel.WEBHOOK: 3,
}


class WebhookLogStatus(str, Enum):
    """Outcome recorded for every inbound webhook delivery."""

    PROCESSED = "processed"
    FAILED = "failed"
    INVALID = "invalid"
