# backend/scalepos/routes/products.py
from flask import Blueprint, current_app, jsonify, request

from ..services import products_service
from ..services.ledger_store import get_product
from ..validation import NotFoundError, ValidationError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("/")
def create_product_route():
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(data)
        return jsonify({"product": product.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify({"product": get_product(product_id).to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(product_id, data)
        return jsonify({"product": product.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500
