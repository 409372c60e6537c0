"""
Input validation helpers and the shared error types.

Amounts and quantities are integers: money is stored in the minor unit of
the tenant currency, so decimals are rejected instead of rounded.
"""

from __future__ import annotations

from typing import Any


# Upper bound for any money amount (prices, tenders, register counts)
MAX_AMOUNT = 999_999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate team member)."""


class NotFoundError(LookupError):
    """Referenced product, profile, sale or register does not exist."""


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings. Rejects bools, floats,
    decimals and scientific notation.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def require_amount(value: Any, field: str) -> int:
    """Non-negative money amount in minor units."""
    amount = coerce_int(value, field)
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return amount


def require_positive_int(value: Any, field: str) -> int:
    number = coerce_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be > 0")
    return number


def require_text(value: Any, field: str, max_length: int | None = None) -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} cannot be blank")
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def optional_text(value: Any, field: str, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
