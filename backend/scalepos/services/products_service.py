# backend/scalepos/services/products_service.py
"""
Products service: create and update the pricing fields checkout depends on.

Stock is not writable here; it only moves through inventory_service so
every change leaves a movement row.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..models.catalog import DISCRETE_UNITS
from ..validation import ValidationError, parse_bool, parse_decimal, require_fields
from .ledger_store import get_product
from .units import normalize_unit

PRODUCT_MUTABLE_FIELDS = {"sku", "name", "unit_price", "unit", "sell_by_weight", "min_stock", "is_active"}


def _check_pricing_mode(unit: str, sell_by_weight: bool) -> None:
    if not sell_by_weight and unit not in DISCRETE_UNITS:
        raise ValidationError(
            f"Products not sold by weight must use a discrete unit ({', '.join(DISCRETE_UNITS)})",
            details={"unit": unit},
        )


def _clean_patch(data: dict) -> dict:
    unknown = set(data) - PRODUCT_MUTABLE_FIELDS - {"stock_quantity"}
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    patch = {}
    if "name" in data:
        name = str(data["name"] or "").strip()
        if not name:
            raise ValidationError("name must not be empty")
        patch["name"] = name
    if "sku" in data:
        sku = str(data["sku"]).strip() if data["sku"] is not None else ""
        patch["sku"] = sku or None
    if "unit_price" in data:
        price = parse_decimal(data["unit_price"], "unit_price")
        if price < 0:
            raise ValidationError("unit_price must not be negative")
        patch["unit_price"] = price
    if "unit" in data:
        patch["unit"] = normalize_unit(data["unit"])
    if "sell_by_weight" in data:
        patch["sell_by_weight"] = parse_bool(data["sell_by_weight"], "sell_by_weight")
    if "min_stock" in data:
        min_stock = parse_decimal(data["min_stock"], "min_stock")
        if min_stock < 0:
            raise ValidationError("min_stock must not be negative")
        patch["min_stock"] = min_stock
    if "is_active" in data:
        patch["is_active"] = parse_bool(data["is_active"], "is_active")
    return patch


def create_product(data: dict) -> Product:
    """
    Create a product. stock_quantity may seed the opening stock; after that
    it is only changed through inventory movements.
    """
    require_fields(data, ["name", "unit_price"])
    patch = _clean_patch(data)
    patch.setdefault("unit", normalize_unit(data.get("unit") or "piece"))
    patch.setdefault("sell_by_weight", False)
    _check_pricing_mode(patch["unit"], patch["sell_by_weight"])

    opening = parse_decimal(data.get("stock_quantity", 0), "stock_quantity")
    if opening < 0:
        raise ValidationError("stock_quantity must not be negative")

    product = Product(stock_quantity=opening, **patch)
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("A product with this sku already exists")
    return product


def update_product(product_id: int, data: dict) -> Product:
    if "stock_quantity" in data:
        raise ValidationError("stock_quantity changes must go through restock or adjust")
    product = get_product(product_id)
    patch = _clean_patch(data)

    _check_pricing_mode(
        patch.get("unit", product.unit),
        patch.get("sell_by_weight", product.sell_by_weight),
    )
    for key, value in patch.items():
        setattr(product, key, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("A product with this sku already exists")
    return product
