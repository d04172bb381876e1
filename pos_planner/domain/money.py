"""Fixed cent-precision money helpers"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_cents(value, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Convert a numeric value to a Decimal quantized to cents"""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=rounding)


def floor_cents(value) -> Decimal:
    return to_cents(value, rounding=ROUND_DOWN)


def sum_cents(amounts: Iterable[Decimal]) -> Decimal:
    return to_cents(sum(amounts, ZERO))


def to_decimal(value) -> Decimal:
    """Exact Decimal for rates and other non-money quantities"""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value)
