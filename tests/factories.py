"""Payload builders shared by the test modules."""

import jwt

PG_KEY = "test-pg-key-0123456789abcdef0123456789abcdef"


def sign_token(claims: dict | None = None, key: str = PG_KEY) -> str:
    return jwt.encode(claims or {"school_id": "school-001"}, key, algorithm="HS256")


def webhook_payload(sign: str | None = None, **overrides) -> dict:
    """A complete settlement webhook for collect id "abc123"."""
    order_info = {
        "order_id": "abc123",
        "order_amount": 1000,
        "transaction_amount": 1000,
        "gateway": "PhonePe",
        "bank_reference": "YESBNK222",
        "status": "SUCCESS",
        "payment_mode": "upi",
        "payemnt_details": "success@ybl",
        "Payment_message": "payment success",
        "payment_time": "2025-04-23T08:14:21.945+00:00",
        "error_message": "NA",
    }
    order_info.update(overrides)
    return {
        "status": 200,
        "order_info": order_info,
        "sign": sign if sign is not None else sign_token(),
    }
