"""
Payment request validation.

Before an Order is created or the gateway contacted, we verify:
  1. Amount is present, numeric, finite and positive
  2. Student info is present and carries a non-empty name

Each check returns a structured result so the initiator can reject with a
precise client error, before any store access or network call.
"""

import math
import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ValidationResult:
    """Result of validating a create-payment request."""

    valid: bool
    message: str = ""
    amount: Optional[float] = None


@dataclass
class StudentInfo:
    """Student details attached to an Order, with generated defaults."""

    name: str
    id: str
    email: str


def check_payment_request(amount: Any, student_info: Any) -> ValidationResult:
    """
    Check whether a create-payment request may proceed.

    Args:
        amount: Requested amount; numbers and numeric strings are accepted.
        student_info: Mapping with at least a ``name``.

    Returns:
        ValidationResult with the parsed amount when valid.
    """
    if amount is None or isinstance(amount, bool) or amount == "":
        return ValidationResult(valid=False, message="Valid positive amount is required")

    try:
        parsed = float(amount)
    except (TypeError, ValueError):
        return ValidationResult(valid=False, message="Valid positive amount is required")

    if not math.isfinite(parsed) or parsed <= 0:
        return ValidationResult(valid=False, message="Valid positive amount is required")

    name = student_info.get("name") if isinstance(student_info, dict) else None
    if not isinstance(name, str) or not name.strip():
        return ValidationResult(
            valid=False,
            message="Student information with at least a name is required",
        )

    return ValidationResult(valid=True, amount=parsed)


def complete_student_info(student_info: dict[str, Any]) -> StudentInfo:
    """Fill in a temporary student id and a placeholder email when absent."""
    name = str(student_info["name"]).strip()
    student_id = student_info.get("id") or f"temp-{uuid.uuid4()}"
    compact = re.sub(r"\s+", "", name).lower()
    email = student_info.get("email") or f"{compact}@example.com"
    return StudentInfo(name=name, id=str(student_id), email=str(email))
