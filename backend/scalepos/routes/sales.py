# Overview: Checkout API routes; parses input and returns JSON responses.

# backend/scalepos/routes/sales.py
from flask import Blueprint, current_app, jsonify, request

from ..services import checkout_service
from ..validation import NotFoundError, PersistenceError, ValidationError, parse_bool, parse_int


sales_bp = Blueprint("weight_sales", __name__, url_prefix="/api/weight-sales")


@sales_bp.post("/")
def create_sale_route():
    """
    Record a completed sale for a mixed piece/weight cart.

    Body: {customer_id?, cashier_id, items: [{product_id, quantity?, weight?,
    unit_price?, sell_by_weight?}], payment_method, location_id?, notes?}
    """
    data = request.get_json(silent=True) or {}
    try:
        result = checkout_service.record_sale(data)
        return jsonify(result.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PersistenceError:
        return jsonify({"error": "Failed to create sale"}), 500
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Failed to create sale"}), 500


@sales_bp.get("/")
def list_sales_route():
    """Paginated sales with weight_info per sale."""
    try:
        page = parse_int(request.args.get("page"), "page", minimum=1, allow_none=True) or 1
        limit = parse_int(request.args.get("limit"), "limit", minimum=1, allow_none=True) or 10
        include_weight = parse_bool(request.args.get("include_weight"), "include_weight", default=True)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        return jsonify(checkout_service.list_weight_sales(page, limit, include_weight)), 200
    except Exception:
        current_app.logger.exception("Failed to list weight sales")
        return jsonify({"error": "Failed to fetch weight sales"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = checkout_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({
        "sale": sale.to_dict(),
        "items": [item.to_dict() for item in sale.items],
    }), 200
