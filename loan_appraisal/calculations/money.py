"""
Fixed-Point Money Helpers

All monetary amounts in the engine are Decimal values quantized to a fixed
number of places. Floats are converted through str() so 0.06 stays 0.06.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a numeric amount")
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"Not a numeric amount: {value!r}") from e


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def quantize_money(value: Number, places: int = 2) -> Decimal:
    """Round an amount to the currency unit (half-up)."""
    return to_decimal(value).quantize(_quantum(places), rounding=ROUND_HALF_UP)


def quantize_ratio(value: Number, places: int = 6) -> Decimal:
    """Round a ratio to a fixed number of places (half-up)."""
    return to_decimal(value).quantize(_quantum(places), rounding=ROUND_HALF_UP)


def to_money(value: Optional[Number], places: int = 2) -> Optional[Decimal]:
    """Convert an optional amount to fixed-point money."""
    if value is None:
        return None
    return quantize_money(value, places)
