# Overview: Cart totals: subtotal, flat-rate tax, grand total and weight summary.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..config import current_policy
from ..numbers import ZERO, json_number, round_money, round_weight


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    total_items: int
    total_weight: Decimal

    @property
    def summary(self) -> dict:
        return {
            "total_items": self.total_items,
            "total_weight": self.total_weight,
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
        }

    def to_dict(self) -> dict:
        return {
            key: (value if isinstance(value, int) else json_number(value))
            for key, value in self.summary.items()
        }


def _field(item, name: str):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def aggregate(line_items: Iterable, tax_rate=None) -> SaleTotals:
    """
    Total a priced cart.

    line_items are dicts or SaleLineItem rows with line_total, weight and
    sell_by_weight. tax_rate defaults to the configured flat rate.

    subtotal and tax are each rounded to the cent, so their sum is exact in
    Decimal; the final quantize only normalizes the exponent.
    """
    rate = Decimal(str(tax_rate)) if tax_rate is not None else current_policy().tax_rate
    items = list(line_items)

    subtotal = round_money(sum((Decimal(str(_field(i, "line_total"))) for i in items), ZERO))
    tax_amount = round_money(subtotal * rate)
    total_amount = round_money(subtotal + tax_amount)

    total_weight = round_weight(sum(
        (Decimal(str(_field(i, "weight") or 0)) for i in items if _field(i, "sell_by_weight")),
        ZERO,
    ))

    return SaleTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=total_amount,
        total_items=len(items),
        total_weight=total_weight,
    )
