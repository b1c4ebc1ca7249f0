"""
Decimal rounding rules shared by pricing, aggregation and reporting.

- Money rounds to 2 decimals, half-up.
- Weights and stock quantities round to 3 decimals, half-up.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
GRAM_PRECISION = Decimal("0.001")
ZERO = Decimal("0")


def round_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def round_weight(value) -> Decimal:
    return Decimal(str(value)).quantize(GRAM_PRECISION, rounding=ROUND_HALF_UP)


def json_number(value):
    """Decimal -> float for JSON payloads; None passes through."""
    if value is None:
        return None
    return float(value)
