"""
Line pricing for piece-sold and weight-sold products.

Every function here is pure: no session access, no app config. The live
quantity/weight selector calls price() on each input change and checkout
calls the same function, so the number shown is the number charged.

Pricing basis by unit (sell_by_weight products, weight always in kg):
- kg: unit_price is per kg.            total = weight * unit_price
- g:  unit_price is per gram.          total = weight * 1000 * unit_price
      display price is normalized to per-kg (unit_price * 1000).
- other units: weight is a direct multiplier, same as kg.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from ..models.catalog import UNIT_GRAM, UNIT_KILOGRAM, UNIT_PIECE
from ..numbers import round_money, round_weight
from .units import convert

GRAMS_PER_KILOGRAM = Decimal("1000")

# Display label for the price shown next to the selector
_DISPLAY_UNITS = {UNIT_GRAM: UNIT_KILOGRAM}


@dataclass(frozen=True)
class PriceQuote:
    total: Decimal
    unit_price_used: Decimal
    display_unit_price: Decimal
    display_unit: str

    def to_dict(self) -> dict:
        return {
            "total": float(self.total),
            "unit_price_used": float(self.unit_price_used),
            "display_unit_price": float(self.display_unit_price),
            "display_unit": self.display_unit,
        }


def price(product, quantity_or_weight, *, unit_price=None) -> PriceQuote:
    """
    Price one cart entry.

    product needs unit_price, unit and sell_by_weight. quantity_or_weight is
    a piece count for piece products and a weight in kg otherwise.
    unit_price overrides the product's stored price (price captured at the
    register).
    """
    base_price = Decimal(str(product.unit_price if unit_price is None else unit_price))
    amount = Decimal(str(quantity_or_weight))

    if not product.sell_by_weight:
        return PriceQuote(
            total=round_money(base_price * amount),
            unit_price_used=base_price,
            display_unit_price=round_money(base_price),
            display_unit=UNIT_PIECE,
        )

    if product.unit == UNIT_GRAM:
        grams = convert(amount, UNIT_KILOGRAM, UNIT_GRAM)
        return PriceQuote(
            total=round_money(grams * base_price),
            unit_price_used=base_price,
            display_unit_price=round_money(base_price * GRAMS_PER_KILOGRAM),
            display_unit=UNIT_KILOGRAM,
        )

    return PriceQuote(
        total=round_money(amount * base_price),
        unit_price_used=base_price,
        display_unit_price=round_money(base_price),
        display_unit=_DISPLAY_UNITS.get(product.unit, product.unit),
    )


def build_line_item(product, quantity_or_weight, *, unit_price=None) -> dict:
    """
    Cart line for product.

    Weighed lines are priced on the captured weight and store it rounded to
    3 decimals with quantity 1; piece lines carry the rounded piece count
    and no weight.
    """
    if product.sell_by_weight:
        quote = price(product, quantity_or_weight, unit_price=unit_price)
        weight = round_weight(quantity_or_weight)
        quantity = 1
    else:
        weight = None
        quantity = int(Decimal(str(quantity_or_weight)).to_integral_value(rounding=ROUND_HALF_UP))
        quote = price(product, quantity, unit_price=unit_price)

    return {
        "product_id": product.id,
        "quantity": quantity,
        "weight": weight,
        "unit_price": quote.unit_price_used,
        "line_total": quote.total,
        "sell_by_weight": bool(product.sell_by_weight),
    }


def format_price(product, quote: PriceQuote | None = None) -> str:
    """'$12.50 c/u' for pieces, '$40.00/kg' style for weighed goods."""
    if not product.sell_by_weight:
        return f"${round_money(product.unit_price)} c/u"
    quote = quote or price(product, 1)
    return f"${quote.display_unit_price}/{quote.display_unit}"
