from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


# Largest value ceiling an admin can set (users.max_total_order_value)
MAX_AMOUNT = Decimal("9999999999.99")

# Sanity bound on raw amounts; far above any ceiling, so larger orders are
# still rejected by the quota check rather than by parsing
MAX_PARSED_AMOUNT = Decimal("1E15")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""


class NotFoundError(LookupError):
    """404-level missing user or resource."""


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings (optional leading minus).
    Rejects bools, decimals and scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{field} must be an integer, not a decimal")
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
    raise ValidationError(f"{field} must be an integer")


def parse_amount(value: Any, field: str) -> Decimal:
    """
    Exact Decimal for a caller-supplied amount (number or numeric string).

    No rounding: order totals are checked against quotas, turned into
    points and stored exactly as sent. Only magnitudes beyond
    MAX_PARSED_AMOUNT are refused; anything below that is left for the
    quota check to judge.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        # repr() keeps the shortest round-tripping form (999.9 not 999.899999...)
        value = repr(value)
    try:
        amount = Decimal(value.strip()) if isinstance(value, str) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if abs(amount) > MAX_PARSED_AMOUNT:
        raise ValidationError(f"{field} is out of range")
    return amount


def coerce_amount(value: Any, field: str) -> Decimal:
    """Admin-configured ceilings: 2dp Decimal that fits Numeric(12, 2)."""
    amount = parse_amount(value, field)
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return amount.quantize(Decimal("0.01"))


def clamp_non_negative(value):
    """Negative quota/usage inputs are stored as 0 rather than rejected."""
    return value if value > 0 else type(value)(0)


def amount_to_json(value: Decimal | int | float | None):
    """Render an amount as a JSON number: 10000 stays an int, 49.5 a float."""
    if value is None:
        return None
    d = Decimal(value)
    if d == d.to_integral_value():
        return int(d)
    return float(d)
