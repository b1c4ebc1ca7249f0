from __future__ import annotations

from ..extensions import db
from ..numbers import json_number
from scalepos.time_utils import to_utc_z

UNIT_KILOGRAM = "kg"
UNIT_GRAM = "g"
UNIT_PIECE = "piece"
UNIT_LITER = "l"
UNIT_MILLILITER = "ml"

PRODUCT_UNITS = (UNIT_KILOGRAM, UNIT_GRAM, UNIT_PIECE, UNIT_LITER, UNIT_MILLILITER)
DISCRETE_UNITS = (UNIT_PIECE,)


class Product(db.Model):
    """
    Product master data with its pricing mode and on-hand stock.

    PRICING MODE:
    - sell_by_weight=False: priced per piece; unit must be a discrete unit.
    - sell_by_weight=True: priced by measured weight. unit_price is per
      ``unit``: per kg for kg products, per gram for g products.

    STOCK:
    stock_quantity is stored in the product's own unit and is only changed
    through the inventory service, which bumps version_id on every write.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)

    # Per-unit price; 4 decimals so per-gram prices keep sub-cent precision
    unit_price = db.Column(db.Numeric(12, 4), nullable=False)
    unit = db.Column(db.String(16), nullable=False, default=UNIT_PIECE)
    sell_by_weight = db.Column(db.Boolean, nullable=False, default=False)

    stock_quantity = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    min_stock = db.Column(db.Numeric(14, 3), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} unit={self.unit} by_weight={self.sell_by_weight}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "unit_price": json_number(self.unit_price),
            "unit": self.unit,
            "sell_by_weight": self.sell_by_weight,
            "stock_quantity": json_number(self.stock_quantity),
            "min_stock": json_number(self.min_stock),
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
