from __future__ import annotations

from ..extensions import db
from ..numbers import json_number
from scalepos.time_utils import to_utc_z

MOVEMENT_SALE = "sale"
MOVEMENT_RESTOCK = "restock"
MOVEMENT_ADJUSTMENT = "adjustment"

MOVEMENT_TYPES = (MOVEMENT_SALE, MOVEMENT_RESTOCK, MOVEMENT_ADJUSTMENT)


class InventoryMovement(db.Model):
    """
    Append-only audit record of a stock change.

    IMMUTABLE: rows are never updated or deleted.
    Invariant: new_stock = max(0, previous_stock + quantity_delta).
    quantity_delta is the requested change (negative for sales); when the
    floor at zero applies, new_stock - previous_stock is smaller than it.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_inventory_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Numeric(14, 3), nullable=False)
    previous_stock = db.Column(db.Numeric(14, 3), nullable=False)
    new_stock = db.Column(db.Numeric(14, 3), nullable=False)

    reference_sale_id = db.Column(db.Integer, db.ForeignKey("weight_sales.id"), nullable=True, index=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity_delta": json_number(self.quantity_delta),
            "previous_stock": json_number(self.previous_stock),
            "new_stock": json_number(self.new_stock),
            "reference_sale_id": self.reference_sale_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
