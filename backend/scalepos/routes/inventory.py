# backend/scalepos/routes/inventory.py
"""
Inventory routes: manual restock/adjust and the movement log.

Sale deductions are not exposed here; they happen inside checkout.
"""
from flask import Blueprint, current_app, jsonify, request

from ..numbers import json_number
from ..services import inventory_service
from ..validation import NotFoundError, PersistenceError, ValidationError, parse_int


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _result_body(result) -> dict:
    return {
        "new_stock": json_number(result.new_stock),
        "low_stock": result.low_stock,
        "movement": result.movement.to_dict(),
    }


@inventory_bp.post("/<int:product_id>/restock")
def restock_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        result = inventory_service.restock(product_id, data.get("quantity"), notes=data.get("notes"))
        return jsonify(_result_body(result)), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PersistenceError:
        current_app.logger.exception("Failed to restock product %s", product_id)
        return jsonify({"error": "Failed to record restock"}), 500


@inventory_bp.post("/<int:product_id>/adjust")
def adjust_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        result = inventory_service.adjust_stock(product_id, data.get("quantity_delta"), notes=data.get("notes"))
        return jsonify(_result_body(result)), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PersistenceError:
        current_app.logger.exception("Failed to adjust product %s", product_id)
        return jsonify({"error": "Failed to record adjustment"}), 500


@inventory_bp.get("/<int:product_id>/movements")
def movements_route(product_id: int):
    try:
        limit = parse_int(request.args.get("limit"), "limit", minimum=1, allow_none=True) or 200
        movements = inventory_service.list_movements(product_id, limit=min(limit, 1000))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"movements": [m.to_dict() for m in movements]}), 200
