# backend/scalepos/routes/customers.py
from flask import Blueprint, jsonify, request

from ..services import loyalty_service
from ..services.ledger_store import get_customer_stats
from ..validation import NotFoundError, ValidationError


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("/")
def open_account_route():
    data = request.get_json(silent=True) or {}
    try:
        account = loyalty_service.open_account(data.get("name"), data.get("email"))
        return jsonify({"customer": account.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@customers_bp.get("/<int:customer_id>")
def get_account_route(customer_id: int):
    try:
        return jsonify({"customer": get_customer_stats(customer_id).to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
