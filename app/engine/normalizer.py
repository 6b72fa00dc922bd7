"""
Gateway status normalization.

The gateway (and the browser redirect it drives) reports status in a loose,
inconsistently-cased vocabulary. Every ingestion path runs the raw token
through ``normalize_status`` before comparing or writing, so the store only
ever holds one of the four canonical states.
"""

from typing import Any

from app.models.enums import PaymentStatus

STATUS_SYNONYMS: dict[PaymentStatus, frozenset[str]] = {
    PaymentStatus.SUCCESS: frozenset({
        "success", "successful", "completed", "paid", "captured", "authorized",
    }),
    PaymentStatus.FAILED: frozenset({
        "failed", "failure", "declined", "rejected", "error",
    }),
    PaymentStatus.CANCELLED: frozenset({
        "cancelled", "canceled", "abandoned", "aborted",
    }),
}

_LOOKUP = {
    token: canonical
    for canonical, tokens in STATUS_SYNONYMS.items()
    for token in tokens
}


def normalize_status(token: Any) -> PaymentStatus:
    """
    Map an arbitrary gateway status token to a canonical PaymentStatus.

    Case-insensitive and total: ``None``, empty or unrecognized tokens
    (including "pending", "processing", "initiated") yield PENDING.
    """
    if isinstance(token, PaymentStatus):
        return token
    if token is None:
        return PaymentStatus.PENDING
    return _LOOKUP.get(str(token).strip().lower(), PaymentStatus.PENDING)


def is_terminal(status: Any) -> bool:
    """True if the (canonical or raw) status is success, failed or cancelled."""
    return normalize_status(status).is_terminal
