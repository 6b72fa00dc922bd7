"""
JWT signing and verification for gateway traffic.

The gateway shares one secret (the PG key) with us. Outbound collect
requests and status queries carry an HS256 JWT signed with it; inbound
webhooks present one that we verify before reading anything else in the
payload.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from app.config import Settings
from app.engine.errors import SigningError, UntrustedWebhookError

logger = logging.getLogger("school_payments.signing")

ALGORITHM = "HS256"
MAX_STATUS_TOKEN_TTL = timedelta(hours=1)


class SignatureService:
    """Creates and verifies gateway JWTs with the pre-shared key."""

    def __init__(self, settings: Settings):
        self._key = settings.pg_key
        ttl = timedelta(seconds=max(settings.status_token_ttl_seconds, 1))
        self._status_ttl = min(ttl, MAX_STATUS_TOKEN_TTL)

    def _encode(self, claims: dict[str, Any]) -> str:
        if not self._key:
            raise SigningError("Signing key is not configured")
        try:
            return jwt.encode(claims, self._key, algorithm=ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.error("Failed to sign gateway token: %s", e)
            raise SigningError(f"Could not sign gateway token: {e}") from e

    def sign_collect_request(self, school_id: str, amount: float, callback_url: str) -> str:
        """
        Sign the create-collect-request payload.

        The gateway expects exactly ``school_id``, ``amount`` (as a string
        with two decimals) and ``callback_url``; no expiry is set.
        """
        return self._encode({
            "school_id": school_id,
            "amount": format_amount(amount),
            "callback_url": callback_url,
        })

    def sign_status_query(self, school_id: str, collect_request_id: str) -> str:
        """Sign a short-lived token authenticating a status query."""
        now = datetime.now(timezone.utc)
        return self._encode({
            "school_id": school_id,
            "collect_request_id": collect_request_id,
            "iat": now,
            "exp": now + self._status_ttl,
        })

    def verify_webhook(self, token: Any) -> dict[str, Any]:
        """
        Verify a webhook ``sign`` token and return its claims.

        Raises:
            UntrustedWebhookError: On any verification failure.
        """
        if not self._key:
            logger.error("Webhook received but no signing key is configured")
            raise UntrustedWebhookError(details="Webhook verification is not configured")
        if not isinstance(token, str) or not token.strip():
            raise UntrustedWebhookError(details="Missing webhook signature")
        try:
            claims = jwt.decode(token.strip(), self._key, algorithms=[ALGORITHM])
        except jwt.PyJWTError as e:
            logger.warning("Webhook signature verification failed: %s", e)
            raise UntrustedWebhookError(details="Invalid webhook signature") from e
        return claims if isinstance(claims, dict) else {}


def format_amount(amount: float) -> str:
    return f"{float(amount):.2f}"
