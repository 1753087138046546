"""Decimal helpers for money and quantities."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from shopledger.core.exceptions import ValidationError

CENTS = Decimal("0.01")


def to_decimal(value: Any, field: str) -> Decimal:
    """Coerce *value* to Decimal, rejecting missing and non-numeric input."""
    if value is None or value == "":
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
