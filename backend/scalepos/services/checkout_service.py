"""
Checkout: turn a mixed piece/weight cart into a persisted sale.

Flow (linear, no intermediate states):
1. Validate and price every line (nothing written yet).
2. Aggregate totals.
3. One DB transaction: sale header (status=completed), line items, and an
   inventory reconciliation per line in cart order. Committed once; any
   failure rolls all of it back.
4. After commit, best-effort loyalty accrual in its own transaction.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..config import SalesPolicy, current_policy
from ..extensions import db
from ..models import Sale, SaleLineItem
from ..models.sales import SALE_STATUS_COMPLETED
from ..numbers import json_number, round_weight
from ..validation import (
    NotFoundError,
    PersistenceError,
    ValidationError,
    parse_bool,
    parse_decimal,
    parse_int,
    require_fields,
)
from . import units
from .aggregation_service import SaleTotals, aggregate
from .concurrency import begin_write_transaction
from .inventory_service import reconcile
from .ledger_store import get_customer_stats, get_product, insert_sale, insert_sale_items, query_sales
from .loyalty_service import LoyaltyOutcome, accrue_detached
from .pricing_service import build_line_item
from scalepos.time_utils import epoch_millis, utcnow


@dataclass
class CheckoutResult:
    sale: Sale
    items: list[SaleLineItem]
    totals: SaleTotals
    loyalty: Optional[LoyaltyOutcome] = None
    low_stock: list[dict] = field(default_factory=list)

    @property
    def summary(self) -> dict:
        return self.totals.summary

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(),
            "items": [item.to_dict() for item in self.items],
            "summary": self.totals.to_dict(),
            "loyalty": self.loyalty.to_dict() if self.loyalty else None,
            "low_stock": self.low_stock,
        }


def generate_sale_number(prefix: str | None = None, now: datetime | None = None) -> str:
    """<prefix>-<epoch ms>-<8 hex chars>; the unique constraint backs it up."""
    prefix = prefix or current_policy().sale_number_prefix
    suffix = uuid.uuid4().hex[:8].upper()
    return f"{prefix}-{epoch_millis(now)}-{suffix}"


def _prepare_line(index: int, raw: dict, policy: SalesPolicy) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")

    product_id = parse_int(raw.get("product_id"), f"items[{index}].product_id", minimum=1)
    product = get_product(product_id)
    if not product.is_active:
        raise ValidationError(f"Product {product_id} is inactive", details={"index": index})

    sell_by_weight = parse_bool(raw.get("sell_by_weight"), "sell_by_weight", default=product.sell_by_weight)
    if sell_by_weight != product.sell_by_weight:
        raise ValidationError(
            f"Product {product_id} sell_by_weight mismatch",
            details={"index": index, "expected": product.sell_by_weight},
        )

    unit_price = parse_decimal(raw.get("unit_price"), f"items[{index}].unit_price", allow_none=True)
    if unit_price is not None and unit_price < 0:
        raise ValidationError(f"items[{index}].unit_price must not be negative")

    if sell_by_weight:
        weight = parse_decimal(raw.get("weight"), f"items[{index}].weight")
        check = units.validate(product, weight, policy)
        if not check.is_valid:
            raise ValidationError(check.message, details={"index": index, "product_id": product_id})
        return build_line_item(product, weight, unit_price=unit_price)

    quantity = parse_int(raw.get("quantity", 1), f"items[{index}].quantity", minimum=1)
    return build_line_item(product, quantity, unit_price=unit_price)


def prepare_lines(raw_items, policy: SalesPolicy | None = None) -> list[dict]:
    """Validate and price a cart. Raises before anything is written."""
    policy = policy or current_policy()
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")
    return [_prepare_line(i, raw, policy) for i, raw in enumerate(raw_items)]


def record_sale(payload: dict) -> CheckoutResult:
    """
    Persist a completed sale and its side effects.

    Raises ValidationError / NotFoundError before any write, and
    PersistenceError("Failed to create sale") when a write fails (the
    whole sale is rolled back in that case).
    """
    policy = current_policy()
    require_fields(payload, ["cashier_id", "payment_method"])

    customer_id = parse_int(payload.get("customer_id"), "customer_id", minimum=1, allow_none=True)
    if customer_id is not None:
        get_customer_stats(customer_id)

    lines = prepare_lines(payload.get("items"), policy)
    totals = aggregate(lines, tax_rate=policy.tax_rate)

    header = {
        "sale_number": generate_sale_number(policy.sale_number_prefix),
        "customer_id": customer_id,
        "cashier_id": payload["cashier_id"],
        "subtotal": totals.subtotal,
        "tax_amount": totals.tax_amount,
        "total_amount": totals.total_amount,
        "payment_method": str(payload["payment_method"]),
        "status": SALE_STATUS_COMPLETED,
        "location_id": payload.get("location_id"),
        "notes": payload.get("notes"),
        "created_at": utcnow(),
    }

    low_stock: list[dict] = []
    try:
        begin_write_transaction()
        sale = insert_sale(header)
        items = insert_sale_items(sale.id, lines)
        for item in items:
            result = reconcile(item.product_id, item.quantity, item.weight, item.sell_by_weight, sale.id)
            if result.low_stock:
                low_stock.append({"product_id": item.product_id, "new_stock": json_number(result.new_stock)})
        db.session.commit()
    except (NotFoundError, ValidationError):
        db.session.rollback()
        raise
    except (SQLAlchemyError, PersistenceError) as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create sale %s", header["sale_number"])
        raise PersistenceError("Failed to create sale") from exc

    current_app.logger.info(
        "Recorded sale %s: %s lines, total %s",
        sale.sale_number,
        len(items),
        totals.total_amount,
    )

    loyalty = None
    if customer_id is not None:
        loyalty = accrue_detached(customer_id, totals.total_amount)

    return CheckoutResult(sale=sale, items=items, totals=totals, loyalty=loyalty, low_stock=low_stock)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def _weight_info(sale: Sale, include_weight: bool) -> dict:
    weight_items = [item for item in sale.items if item.weight is not None]
    total_weight = round_weight(sum((item.weight for item in weight_items), round_weight(0)))
    info = {
        "has_weight_items": bool(weight_items),
        "total_weight": json_number(total_weight),
        "weight_items_count": len(weight_items),
    }
    if include_weight:
        info["weight_items"] = [item.to_dict() for item in weight_items]
    return info


def list_weight_sales(page: int = 1, limit: int = 10, include_weight: bool = True) -> dict:
    """Newest-first page of completed sales, each with a weight_info block."""
    limit = min(max(limit or 10, 1), 100)
    page = max(page or 1, 1)

    query = query_sales()
    total = query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    sales = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "sales": [
            {
                **sale.to_dict(),
                "items": [item.to_dict() for item in sale.items],
                "weight_info": _weight_info(sale, include_weight),
            }
            for sale in sales
        ],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
        },
    }
