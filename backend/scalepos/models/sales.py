from __future__ import annotations

from ..extensions import db
from ..numbers import json_number
from scalepos.time_utils import to_utc_z

SALE_STATUS_COMPLETED = "completed"


class Sale(db.Model):
    """
    Completed checkout header.

    Sales are written once, inside the same DB transaction as their line
    items and inventory movements, and never updated afterwards.
    Invariants: total_amount = subtotal + tax_amount; subtotal = sum(line_total).
    """
    __tablename__ = "weight_sales"
    __table_args__ = (
        db.UniqueConstraint("sale_number", name="uq_weight_sales_number"),
        db.Index("ix_weight_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number, e.g. "WS-1760795400123-3F9A0C1B"
    sale_number = db.Column(db.String(64), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customer_accounts.id"), nullable=True, index=True)
    cashier_id = db.Column(db.String(64), nullable=False, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)

    payment_method = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED, index=True)
    location_id = db.Column(db.String(64), nullable=True, index=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    customer = db.relationship("CustomerAccount", backref=db.backref("sales", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "customer_id": self.customer_id,
            "cashier_id": self.cashier_id,
            "subtotal": json_number(self.subtotal),
            "tax_amount": json_number(self.tax_amount),
            "total_amount": json_number(self.total_amount),
            "payment_method": self.payment_method,
            "status": self.status,
            "location_id": self.location_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class SaleLineItem(db.Model):
    """
    One priced cart entry.

    quantity is always 1 and weight is set for sell-by-weight lines;
    weight is NULL for piece lines. unit_price is the price used at sale time.
    """
    __tablename__ = "weight_sale_items"
    __table_args__ = (
        db.Index("ix_weight_sale_items_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("weight_sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    weight = db.Column(db.Numeric(14, 3), nullable=True)
    unit_price = db.Column(db.Numeric(12, 4), nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)
    sell_by_weight = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True, order_by="SaleLineItem.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "weight": json_number(self.weight),
            "unit_price": json_number(self.unit_price),
            "line_total": json_number(self.line_total),
            "sell_by_weight": self.sell_by_weight,
            "created_at": to_utc_z(self.created_at),
        }
