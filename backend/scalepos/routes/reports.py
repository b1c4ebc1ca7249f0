from flask import Blueprint, current_app, jsonify, request

from scalepos.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/weight-sales")
def weight_sales_report():
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        report = reporting_service.weight_sales_report(start, end)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to generate weight sales report")
        return jsonify({"error": "Failed to generate weight sales report"}), 500
