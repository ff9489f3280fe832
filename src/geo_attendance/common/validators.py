from __future__ import annotations

from typing import Optional

from ..core.exceptions import ReasonTooShort, ValidationError


def require_reason(value: Optional[str], field_name: str, *, min_len: int, max_len: int) -> str:
    """Trim a free-text reason and enforce its length bounds."""
    text = (value or "").strip()
    if len(text) < min_len:
        raise ReasonTooShort(
            f"{field_name} must be at least {min_len} characters",
            field=field_name,
            min_length=min_len,
            length=len(text),
        )
    if len(text) > max_len:
        raise ValidationError(
            f"{field_name} must be at most {max_len} characters",
            field=field_name,
            max_length=max_len,
            length=len(text),
        )
    return text


def require_coordinate(value, field_name: str, *, bound: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if not -bound <= number <= bound:
        raise ValidationError(f"{field_name} out of range", field=field_name, value=number)
    return number


def require_non_negative(value, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if number < 0:
        raise ValidationError(f"{field_name} must not be negative", field=field_name, value=number)
    return number
