from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any


# Maximum single amount: 9,999,999,999.99 (Numeric(12, 2) column ceiling)
MAX_AMOUNT = Decimal("9999999999.99")

CENT = Decimal("0.01")


class SettlementError(Exception):
    """Base class for caller-visible settlement failures."""

    status_code = 400


class ValidationError(SettlementError, ValueError):
    """400-level input problem."""


class NotFoundError(SettlementError):
    """Referenced order, session or customer does not resolve."""

    status_code = 404


class InvariantViolation(SettlementError):
    """Business rule rejected the call before any write happened."""


def to_money(value: Any, *, field: str = "amount") -> Decimal:
    """
    Coerce a JSON/Python value to a two-decimal Decimal.

    Accepts int, Decimal and numeric strings. Floats are accepted too since
    browsers send amounts as JSON numbers; they go through str() so 0.1 stays 0.1.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            amount = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum of {MAX_AMOUNT}")
    return amount


def money_str(value: Decimal | None) -> str | None:
    """Render a stored amount for JSON output."""
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))
