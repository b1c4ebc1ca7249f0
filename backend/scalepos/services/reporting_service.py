# Overview: Read-only weight-sales analytics over persisted sales.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from scalepos.extensions import db
from scalepos.models import Product, Sale, SaleLineItem
from scalepos.models.sales import SALE_STATUS_COMPLETED
from scalepos.numbers import ZERO, json_number, round_money, round_weight
from scalepos.time_utils import parse_range_bound, to_utc_z

TOP_PRODUCTS_LIMIT = 10


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _parse_range(start, end):
    try:
        start_dt = parse_range_bound(start)
        end_dt = parse_range_bound(end, end=True)
    except ValueError:
        raise ReportError("start and end must be ISO-8601 dates or datetimes")
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("start must not be after end")
    return start_dt, end_dt


def _dec(value) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


def _revenue_per_kg(revenue: Decimal, weight: Decimal) -> Decimal:
    if weight <= 0:
        return round_money(0)
    return round_money(revenue / weight)


def weight_sales_report(start=None, end=None, *, top: int = TOP_PRODUCTS_LIMIT) -> dict:
    """
    Weight analytics for completed sales created in [start, end].

    Only weighed lines count (weight IS NOT NULL); a sale qualifies when it
    has at least one. Date-only bounds cover whole days.
    """
    start_dt, end_dt = _parse_range(start, end)

    def _scoped(query):
        query = query.filter(
            Sale.status == SALE_STATUS_COMPLETED,
            SaleLineItem.weight.isnot(None),
        )
        if start_dt:
            query = query.filter(Sale.created_at >= start_dt)
        if end_dt:
            query = query.filter(Sale.created_at <= end_dt)
        return query

    totals = _scoped(
        db.session.query(
            func.sum(SaleLineItem.weight).label("weight"),
            func.sum(SaleLineItem.line_total).label("revenue"),
            func.count(SaleLineItem.id).label("lines"),
            func.count(func.distinct(Sale.id)).label("sales"),
        ).join(Sale, Sale.id == SaleLineItem.sale_id)
    ).one()

    total_weight = round_weight(_dec(totals.weight))
    total_revenue = round_money(_dec(totals.revenue))
    line_count = int(totals.lines or 0)

    weight_sum = func.sum(SaleLineItem.weight).label("total_weight")
    rows = _scoped(
        db.session.query(
            Product.id.label("product_id"),
            Product.name,
            Product.unit,
            weight_sum,
            func.sum(SaleLineItem.line_total).label("total_revenue"),
            func.count(SaleLineItem.id).label("sales_count"),
        )
        .join(SaleLineItem, SaleLineItem.product_id == Product.id)
        .join(Sale, Sale.id == SaleLineItem.sale_id)
    ).group_by(Product.id, Product.name, Product.unit).order_by(weight_sum.desc(), Product.id.asc()).limit(top).all()

    top_products = []
    for row in rows:
        weight = round_weight(_dec(row.total_weight))
        revenue = round_money(_dec(row.total_revenue))
        top_products.append(
            {
                "product_id": row.product_id,
                "name": row.name,
                "unit": row.unit,
                "total_weight": json_number(weight),
                "total_revenue": json_number(revenue),
                "sales_count": int(row.sales_count or 0),
                "revenue_per_kg": json_number(_revenue_per_kg(revenue, weight)),
            }
        )

    average = round_weight(total_weight / line_count) if line_count else round_weight(0)

    return {
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "summary": {
            "total_weight_sold": json_number(total_weight),
            "total_weight_revenue": json_number(total_revenue),
            "weight_products_count": line_count,
            "average_weight_per_sale": json_number(average),
            "revenue_per_kg": json_number(_revenue_per_kg(total_revenue, total_weight)),
        },
        "top_products_by_weight": top_products,
        "sales_count": int(totals.sales or 0),
    }
