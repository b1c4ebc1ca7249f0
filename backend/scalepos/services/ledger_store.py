# Overview: Read/write contract between the checkout core and the database.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import update

from ..extensions import db
from ..models import CustomerAccount, InventoryMovement, Product, Sale, SaleLineItem
from ..models.sales import SALE_STATUS_COMPLETED
from ..validation import NotFoundError
from .concurrency import lock_for_update
from scalepos.time_utils import utcnow
"""
Ledger store invariants (authoritative)

- Writes flush but never commit; the caller owns the transaction boundary.
- Product stock is only written through set_product_stock(), a
  compare-and-swap on version_id. A False return means another writer got
  there first and the caller must re-read.
- Sales, sale items and inventory movements are insert-only.
"""


@dataclass(frozen=True)
class StockSnapshot:
    product_id: int
    name: str
    unit: str
    stock_quantity: Decimal
    version_id: int


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def read_product_stock(product_id: int, *, lock: bool = False) -> StockSnapshot:
    """Fresh read of stock and version straight from the database."""
    query = db.session.query(
        Product.name,
        Product.unit,
        Product.stock_quantity,
        Product.version_id,
    ).filter(Product.id == product_id)
    if lock:
        query = lock_for_update(query)
    row = query.one_or_none()
    if row is None:
        raise NotFoundError(f"Product {product_id} not found")
    return StockSnapshot(
        product_id=product_id,
        name=row.name,
        unit=row.unit,
        stock_quantity=Decimal(str(row.stock_quantity or 0)),
        version_id=row.version_id,
    )


def set_product_stock(product_id: int, new_stock: Decimal, *, expected_version: int) -> bool:
    """Write new_stock only if version_id is still expected_version."""
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.version_id == expected_version)
        .values(
            stock_quantity=new_stock,
            version_id=expected_version + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session="evaluate")
    )
    return result.rowcount == 1


def insert_sale(header: dict) -> Sale:
    sale = Sale(
        sale_number=header["sale_number"],
        customer_id=header.get("customer_id"),
        cashier_id=str(header["cashier_id"]),
        subtotal=header["subtotal"],
        tax_amount=header["tax_amount"],
        total_amount=header["total_amount"],
        payment_method=header["payment_method"],
        status=header.get("status", SALE_STATUS_COMPLETED),
        location_id=header.get("location_id"),
        notes=header.get("notes"),
        created_at=header.get("created_at") or utcnow(),
    )
    db.session.add(sale)
    db.session.flush()  # assigns sale.id without committing
    return sale


def insert_sale_items(sale_id: int, items: list[dict]) -> list[SaleLineItem]:
    rows = [
        SaleLineItem(
            sale_id=sale_id,
            product_id=item["product_id"],
            quantity=item["quantity"],
            weight=item.get("weight"),
            unit_price=item["unit_price"],
            line_total=item["line_total"],
            sell_by_weight=item["sell_by_weight"],
        )
        for item in items
    ]
    db.session.add_all(rows)
    db.session.flush()
    return rows


def insert_inventory_movement(
    *,
    product_id: int,
    movement_type: str,
    quantity_delta: Decimal,
    previous_stock: Decimal,
    new_stock: Decimal,
    reference_sale_id: int | None = None,
    notes: Optional[str] = None,
) -> InventoryMovement:
    movement = InventoryMovement(
        product_id=product_id,
        movement_type=movement_type,
        quantity_delta=quantity_delta,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reference_sale_id=reference_sale_id,
        notes=notes,
        created_at=utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def get_customer_stats(customer_id: int) -> CustomerAccount:
    account = db.session.get(CustomerAccount, customer_id)
    if account is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    return account


def update_customer_stats(
    account: CustomerAccount,
    *,
    total_spent: Decimal,
    loyalty_points: int,
    last_visit: datetime,
) -> CustomerAccount:
    """Assign new totals; the version_id_col check happens at flush."""
    account.total_spent = total_spent
    account.loyalty_points = loyalty_points
    account.last_visit = last_visit
    db.session.flush()
    return account


def query_sales(
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    weight_only: bool = False,
):
    """Completed sales in [start, end] (inclusive), newest first."""
    query = db.session.query(Sale).filter(Sale.status == SALE_STATUS_COMPLETED)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)
    if weight_only:
        query = query.filter(Sale.items.any(SaleLineItem.weight.isnot(None)))
    return query.order_by(Sale.created_at.desc(), Sale.id.desc())
