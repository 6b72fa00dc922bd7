"""
Domain errors for payment initiation and status reconciliation.

Every error carries the HTTP status it maps to, a short title and optional
details, so the API layer can render them uniformly as
``{"error": ..., "details": ...}``. Gateway errors additionally say whether
the caller may retry; the core itself never retries.
"""

from typing import Any, Optional


class PaymentError(Exception):
    """Base exception for everything the payment core raises on purpose."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message or self.error)
        self.details = details if details is not None else message


class InvalidRequestError(PaymentError):
    """Client input error: bad amount, missing student name, missing ids."""

    status_code = 400
    error = "Invalid request"


class InvalidWebhookError(PaymentError):
    """Webhook body is missing fields or carries values that do not parse."""

    status_code = 400
    error = "Invalid webhook payload"


class UntrustedWebhookError(PaymentError):
    """Webhook signature could not be verified."""

    status_code = 403
    error = "Unauthorized webhook"


class WebhookOrderNotFoundError(PaymentError):
    """Webhook references a collect request this system never created."""

    status_code = 404
    error = "Order not found"


class TransactionNotFoundError(PaymentError):
    """Status lookup for a collect id with no OrderStatus."""

    status_code = 404
    error = "Transaction not found"


class ConcurrentUpdateError(PaymentError):
    """Another writer committed the same OrderStatus row first."""

    status_code = 409
    error = "Concurrent update"


class SigningError(PaymentError):
    """Outbound token could not be produced (e.g. signing key missing)."""

    status_code = 500
    error = "Signing failure"


class GatewayError(PaymentError):
    """Base exception for payment gateway errors."""

    status_code = 502
    error = "Payment gateway error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Any = None,
        upstream_status: Optional[int] = None,
        retriable: bool = False,
    ):
        super().__init__(message, details)
        self.upstream_status = upstream_status
        self.retriable = retriable


class GatewayUnavailableError(GatewayError):
    """Timeout, connection failure or 5xx from the gateway."""

    status_code = 504
    error = "Payment gateway unavailable"

    def __init__(self, message: Optional[str] = None, details: Any = None, upstream_status: Optional[int] = None):
        super().__init__(message, details, upstream_status=upstream_status, retriable=True)


class InvalidPaymentRequestError(GatewayError):
    """Gateway rejected the collect request as malformed (400-class)."""

    status_code = 400
    error = "Invalid payment request"


class GatewayAuthError(GatewayError):
    """Gateway rejected our credentials (401/403)."""

    status_code = 401
    error = "Payment gateway authentication failed"


class GatewayNotFoundError(GatewayError):
    """Gateway endpoint or collect request does not exist (404)."""

    status_code = 404
    error = "Payment gateway endpoint not found"


class InvalidGatewayResponseError(GatewayError):
    """Gateway answered 2xx but the body is unusable."""

    status_code = 502
    error = "Invalid payment gateway response"
