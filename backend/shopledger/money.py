# Overview: Money codec; the only place decimal currency and integer cents meet.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import InvalidAmount

"""
Money invariants (authoritative)

- Every monetary column is an integer number of minor units (cents).
- Arithmetic inside services is integer-only; Decimal appears only at the edges.
- Conversion rounds amount * 100 half away from zero (ROUND_HALF_UP on Decimal).
- Floats are converted through str() so 14.99 means exactly 14.99.
"""

MINOR_UNITS_PER_MAJOR = 100
MINOR_QUANT = Decimal("1")
MONEY_QUANT = Decimal("0.01")

# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999


def _as_decimal(amount, field: str) -> Decimal:
    if isinstance(amount, bool):
        raise InvalidAmount(f"{field} must be a number", details={"field": field})
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, (int, float)):
        value = Decimal(str(amount))
    elif isinstance(amount, str):
        text = amount.strip().replace(",", "")
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise InvalidAmount(f"{field} must be a number", details={"field": field})
    else:
        raise InvalidAmount(f"{field} must be a number", details={"field": field})

    if not value.is_finite():
        raise InvalidAmount(f"{field} must be a finite number", details={"field": field})
    return value


def to_minor_units(amount, *, field: str = "amount") -> int:
    """Decimal currency -> integer cents; negative amounts are rejected."""
    value = _as_decimal(amount, field)
    if value < 0:
        raise InvalidAmount(f"{field} must be >= 0", details={"field": field})

    minor = int((value * MINOR_UNITS_PER_MAJOR).quantize(MINOR_QUANT, rounding=ROUND_HALF_UP))
    return check_minor_units(minor, field=field)


def check_minor_units(minor, *, field: str = "amount") -> int:
    """Validate an amount that is already in cents."""
    if isinstance(minor, bool) or not isinstance(minor, int):
        raise InvalidAmount(f"{field} must be an integer number of cents", details={"field": field})
    if minor < 0:
        raise InvalidAmount(f"{field} must be >= 0", details={"field": field})
    if minor > MAX_PRICE_CENTS:
        raise InvalidAmount(
            f"{field} cannot exceed {MAX_PRICE_CENTS} cents",
            details={"field": field, "max_cents": MAX_PRICE_CENTS},
        )
    return minor


def to_decimal(minor: int) -> Decimal:
    """Integer cents -> Decimal with two fraction digits. Negative values pass through."""
    return (Decimal(minor) / MINOR_UNITS_PER_MAJOR).quantize(MONEY_QUANT)


def format_money(minor: int) -> str:
    return str(to_decimal(minor))
