"""Decimal helpers shared by the valuation engines."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

MONEY_QUANT = Decimal("0.01")
RATIO_QUANT = Decimal("0.0001")


def to_decimal(value) -> Decimal:
    """Coerce ints, floats and strings to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    """Round a monetary amount to cents (half up)."""
    return to_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def ratio(value) -> Decimal:
    """Round a probability or coefficient to 4 places (half up)."""
    return to_decimal(value).quantize(RATIO_QUANT, rounding=ROUND_HALF_UP)
