# Overview: Unit normalization, weight/volume conversion and per-product weight bounds.

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..config import SalesPolicy, current_policy
from ..models.catalog import (
    UNIT_GRAM,
    UNIT_KILOGRAM,
    UNIT_LITER,
    UNIT_MILLILITER,
    UNIT_PIECE,
)
from ..numbers import round_weight
from ..validation import ValidationError, parse_decimal

UNIT_ALIASES = {
    "kg": UNIT_KILOGRAM,
    "kilogram": UNIT_KILOGRAM,
    "kilograms": UNIT_KILOGRAM,
    "kilo": UNIT_KILOGRAM,
    "g": UNIT_GRAM,
    "gram": UNIT_GRAM,
    "grams": UNIT_GRAM,
    "gramo": UNIT_GRAM,
    "piece": UNIT_PIECE,
    "pieces": UNIT_PIECE,
    "pieza": UNIT_PIECE,
    "pc": UNIT_PIECE,
    "l": UNIT_LITER,
    "liter": UNIT_LITER,
    "litre": UNIT_LITER,
    "litro": UNIT_LITER,
    "ml": UNIT_MILLILITER,
    "milliliter": UNIT_MILLILITER,
    "millilitre": UNIT_MILLILITER,
}

# (from, to) -> factor. Anything else converts as identity.
_FACTORS = {
    (UNIT_GRAM, UNIT_KILOGRAM): Decimal("0.001"),
    (UNIT_KILOGRAM, UNIT_GRAM): Decimal("1000"),
    (UNIT_MILLILITER, UNIT_LITER): Decimal("0.001"),
    (UNIT_LITER, UNIT_MILLILITER): Decimal("1000"),
}


@dataclass(frozen=True)
class WeightValidation:
    is_valid: bool
    message: Optional[str] = None


def normalize_unit(unit: str) -> str:
    """Map a unit name or alias to its canonical code."""
    key = (unit or "").strip().lower()
    try:
        return UNIT_ALIASES[key]
    except KeyError:
        raise ValidationError(f"Unsupported unit: {unit!r}")


def convert(value, from_unit: str, to_unit: str) -> Decimal:
    """
    Convert between g/kg and ml/l.

    Unrecognized pairs (including unknown unit names) return the value
    unchanged rather than raising.
    """
    amount = Decimal(str(value))
    src = UNIT_ALIASES.get((from_unit or "").strip().lower(), from_unit)
    dst = UNIT_ALIASES.get((to_unit or "").strip().lower(), to_unit)
    factor = _FACTORS.get((src, dst))
    if factor is None:
        return amount
    return amount * factor


def validate(product, weight, policy: SalesPolicy | None = None) -> WeightValidation:
    """
    Check a captured weight (kg) against the sale bounds for product.

    - weight must be > 0, and must not round to 0.000 at gram precision
    - weight must not exceed policy.max_weight for any unit
    - gram-unit products must not exceed policy.max_gram_unit_weight,
      which catches grams typed where kilograms were expected
    """
    policy = policy or current_policy()
    try:
        amount = parse_decimal(weight, "weight")
    except ValidationError as exc:
        return WeightValidation(False, str(exc))

    if amount <= 0:
        return WeightValidation(False, "weight must be greater than 0")
    if round_weight(amount) <= 0:
        return WeightValidation(False, "weight must be at least 0.001")
    if amount > policy.max_weight:
        return WeightValidation(False, f"weight must not exceed {policy.max_weight}")
    if product.unit == UNIT_GRAM and amount > policy.max_gram_unit_weight:
        return WeightValidation(
            False,
            f"weight must not exceed {policy.max_gram_unit_weight} for products sold by the gram",
        )
    return WeightValidation(True)


def format_weight(weight, unit: str) -> str:
    """Display a kg weight: whole grams below 1 kg for gram products, else x.xxxkg."""
    amount = Decimal(str(weight))
    if unit == UNIT_GRAM and amount < 1:
        grams = convert(amount, UNIT_KILOGRAM, UNIT_GRAM)
        return f"{grams.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}g"
    return f"{round_weight(amount)}kg"
