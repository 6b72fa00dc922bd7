"""
Abstract payment gateway interface.

The gateway exposes two calls we depend on: create a collect request (which
returns a hosted payment URL) and query a collect request's status. Its
response field names have drifted across versions, so each implementation
resolves them once, here at the boundary, from the ordered alias tuples
below. Nothing past this module looks at raw gateway field names.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

COLLECT_ID_ALIASES = ("collect_request_id", "id")
PAYMENT_URL_ALIASES = ("collect_request_url", "Collect_request_url", "payment_url", "redirect_url")
STATUS_ALIASES = ("status", "payment_status")
AMOUNT_ALIASES = ("amount", "transaction_amount")
MESSAGE_ALIASES = ("payment_message", "message")
ERROR_ALIASES = ("error_message", "error")
PAYMENT_TIME_ALIASES = ("payment_time",)


def resolve_alias(data: Any, aliases: tuple[str, ...]) -> Optional[Any]:
    """Return the first non-empty value found under ``aliases`` in ``data``."""
    if not isinstance(data, dict):
        return None
    for key in aliases:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


@dataclass
class CollectRequest:
    """Signed request to open a collect request with the gateway."""

    school_id: str
    amount: str  # two-decimal string, as signed
    callback_url: str
    sign: str


@dataclass
class CollectRequestResult:
    """Gateway answer to a collect request, aliases already resolved."""

    collect_request_id: Optional[str]
    payment_url: Optional[str]
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class CollectRequestStatus:
    """Gateway answer to a status query, aliases already resolved."""

    status: Optional[str]
    amount: Optional[float] = None
    payment_message: Optional[str] = None
    error_message: Optional[str] = None
    payment_time: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)


def parse_collect_result(data: Any) -> CollectRequestResult:
    collect_id = resolve_alias(data, COLLECT_ID_ALIASES)
    url = resolve_alias(data, PAYMENT_URL_ALIASES)
    return CollectRequestResult(
        collect_request_id=str(collect_id) if collect_id is not None else None,
        payment_url=str(url) if url is not None else None,
        raw=data if isinstance(data, dict) else {},
    )


def parse_status_result(data: Any) -> CollectRequestStatus:
    amount = resolve_alias(data, AMOUNT_ALIASES)
    try:
        amount = float(amount) if amount is not None else None
    except (TypeError, ValueError):
        amount = None
    status = resolve_alias(data, STATUS_ALIASES)
    message = resolve_alias(data, MESSAGE_ALIASES)
    error = resolve_alias(data, ERROR_ALIASES)
    payment_time = resolve_alias(data, PAYMENT_TIME_ALIASES)
    return CollectRequestStatus(
        status=str(status) if status is not None else None,
        amount=amount,
        payment_message=str(message) if message is not None else None,
        error_message=str(error) if error is not None else None,
        payment_time=str(payment_time) if payment_time is not None else None,
        raw=data if isinstance(data, dict) else {},
    )


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Gateway identifier (e.g. 'Edviron')."""
        ...

    @abstractmethod
    async def create_collect_request(self, request: CollectRequest) -> CollectRequestResult:
        """
        Open a collect request and return the hosted payment URL.

        Raises:
            GatewayUnavailableError: Timeout, connection failure or 5xx.
            InvalidPaymentRequestError: Gateway rejected the request (4xx).
            GatewayAuthError: Gateway rejected our credentials.
            InvalidGatewayResponseError: 2xx with an unusable body.
        """
        ...

    @abstractmethod
    async def get_collect_request_status(
        self,
        collect_request_id: str,
        school_id: str,
        sign: str,
    ) -> CollectRequestStatus:
        """
        Query the authoritative status of a collect request.

        Raises the same GatewayError family as ``create_collect_request``.
        """
        ...
