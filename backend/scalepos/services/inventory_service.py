# Overview: Stock reconciliation for sales plus manual restock/adjust; every change leaves a movement row.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..config import current_policy
from ..extensions import db
from ..models import InventoryMovement
from ..models.inventory import MOVEMENT_ADJUSTMENT, MOVEMENT_RESTOCK, MOVEMENT_SALE
from ..numbers import ZERO, round_weight
from ..validation import NotFoundError, PersistenceError, ValidationError, parse_decimal
from .concurrency import begin_write_transaction, run_with_retry
from .ledger_store import (
    get_product,
    insert_inventory_movement,
    read_product_stock,
    set_product_stock,
)
"""
Inventory invariants (authoritative)

- Stock is never rejected for insufficiency: it floors at zero and the sale
  proceeds.
- new_stock = max(0, previous_stock + quantity_delta) on every movement.
- Sell-by-weight lines deduct the captured weight value as-is, whatever the
  product unit; piece lines deduct the quantity.
- Stock writes are compare-and-swap on Product.version_id. A lost race
  re-reads and recomputes from the winner's value, so concurrent sales
  never overwrite each other's deduction.
- reconcile() flushes only; the checkout transaction commits.
"""


class StockConflictError(PersistenceError):
    """Stock kept changing underneath us for every allowed attempt."""


@dataclass(frozen=True)
class ReconcileResult:
    new_stock: Decimal
    movement: InventoryMovement
    low_stock: bool


def _apply_stock_change(
    product_id: int,
    delta: Decimal,
    *,
    movement_type: str,
    reference_sale_id: int | None = None,
    notes: str | None = None,
) -> ReconcileResult:
    policy = current_policy()

    for _ in range(max(policy.stock_update_attempts, 1)):
        snapshot = read_product_stock(product_id, lock=True)
        new_stock = max(ZERO, snapshot.stock_quantity + delta)
        if set_product_stock(product_id, new_stock, expected_version=snapshot.version_id):
            break
    else:
        raise StockConflictError(
            f"Could not update stock for product {product_id} after "
            f"{policy.stock_update_attempts} attempts"
        )

    movement = insert_inventory_movement(
        product_id=product_id,
        movement_type=movement_type,
        quantity_delta=delta,
        previous_stock=snapshot.stock_quantity,
        new_stock=new_stock,
        reference_sale_id=reference_sale_id,
        notes=notes,
    )

    low_stock = delta < 0 and new_stock <= policy.low_stock_threshold
    if low_stock:
        current_app.logger.warning(
            "Low stock for %s (product %s): %s %s remaining",
            snapshot.name,
            product_id,
            new_stock,
            snapshot.unit,
        )

    return ReconcileResult(new_stock=new_stock, movement=movement, low_stock=low_stock)


def reconcile(
    product_id: int,
    quantity: int | None,
    weight,
    sell_by_weight: bool,
    sale_id: int | None,
) -> ReconcileResult:
    """
    Deduct one finalized sale line from stock and log the movement.

    Raises NotFoundError if the product no longer exists.
    """
    if sell_by_weight:
        if weight is None:
            raise ValidationError("weight is required for sell-by-weight lines")
        deduction = Decimal(str(weight))
        notes = f"Weight sale: {round_weight(deduction)}kg"
    else:
        deduction = Decimal(str(quantity if quantity is not None else 1))
        notes = f"Sale: {quantity} units"

    return _apply_stock_change(
        product_id,
        -deduction,
        movement_type=MOVEMENT_SALE,
        reference_sale_id=sale_id,
        notes=notes,
    )


def _manual_change(product_id: int, delta: Decimal, movement_type: str, notes: str | None) -> ReconcileResult:
    def _op():
        begin_write_transaction()
        result = _apply_stock_change(product_id, delta, movement_type=movement_type, notes=notes)
        db.session.commit()
        return result

    try:
        return run_with_retry(_op)
    except (NotFoundError, ValidationError):
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError(f"Failed to record {movement_type}") from exc


def restock(product_id: int, quantity, notes: str | None = None) -> ReconcileResult:
    """Add received stock. quantity must be positive, in the product's unit."""
    amount = parse_decimal(quantity, "quantity")
    if amount <= 0:
        raise ValidationError("quantity must be greater than 0")
    return _manual_change(product_id, amount, MOVEMENT_RESTOCK, notes)


def adjust_stock(product_id: int, quantity_delta, notes: str | None = None) -> ReconcileResult:
    """
    Correct stock by a signed delta (count corrections, shrinkage).

    Negative adjustments floor at zero like sales do.
    """
    delta = parse_decimal(quantity_delta, "quantity_delta")
    if delta == 0:
        raise ValidationError("quantity_delta must not be 0")
    if not notes:
        raise ValidationError("notes are required for adjustments")
    return _manual_change(product_id, delta, MOVEMENT_ADJUSTMENT, notes)


def list_movements(product_id: int, *, limit: int = 200) -> list[InventoryMovement]:
    get_product(product_id)
    return (
        db.session.query(InventoryMovement)
        .filter_by(product_id=product_id)
        .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
        .limit(limit)
        .all()
    )
