# backend/scalepos/routes/pricing.py
"""
Live pricing for the quantity/weight selector.

Called on every input change; stateless and read-only. An out-of-bounds
weight is not an HTTP error here: the response carries the validation
message so the selector can show it inline.
"""
from flask import Blueprint, jsonify, request

from ..services import units
from ..services.ledger_store import get_product
from ..services.pricing_service import build_line_item, format_price, price
from ..numbers import json_number
from ..validation import NotFoundError, ValidationError, parse_decimal, parse_int


pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/pricing")


@pricing_bp.post("/quote")
def quote_route():
    data = request.get_json(silent=True) or {}
    try:
        product_id = parse_int(data.get("product_id"), "product_id", minimum=1)
        product = get_product(product_id)
        unit_price = parse_decimal(data.get("unit_price"), "unit_price", allow_none=True)

        if product.sell_by_weight:
            amount = parse_decimal(data.get("weight"), "weight")
            check = units.validate(product, amount)
        else:
            amount = parse_int(data.get("quantity", 1), "quantity", minimum=1)
            check = units.WeightValidation(True)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    body = {
        "product_id": product.id,
        "validation": {"is_valid": check.is_valid, "message": check.message},
        "quote": None,
        "line": None,
        "display": None,
    }
    if check.is_valid:
        quote = price(product, amount, unit_price=unit_price)
        line = build_line_item(product, amount, unit_price=unit_price)
        body["quote"] = quote.to_dict()
        body["display"] = {
            "price": format_price(product, quote),
            "weight": units.format_weight(amount, product.unit) if product.sell_by_weight else None,
        }
        body["line"] = {
            **line,
            "weight": json_number(line["weight"]),
            "unit_price": json_number(line["unit_price"]),
            "line_total": json_number(line["line_total"]),
        }
    return jsonify(body), 200
