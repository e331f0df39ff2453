from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional, Type

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str, *, error: Type[ValidationError] = ValidationError) -> str:
    if not value or not value.strip():
        raise error(f"{field_name} is required")
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def require_positive_amount(value, field_name: str = "Amount") -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field_name} must be a number") from None
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number")
    if amount <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return amount


def require_non_negative_int(value, field_name: str) -> int:
    try:
        number = int(value or 0)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer") from None
    if number < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return number
