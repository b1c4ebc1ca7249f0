"""
Checkout tests: the end-to-end sale path against an in-memory database.
"""
import re
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from scalepos.extensions import db
from scalepos.models import CustomerAccount, InventoryMovement, Product, Sale, SaleLineItem
from scalepos.services import checkout_service, loyalty_service
from scalepos.services.inventory_service import StockConflictError
from scalepos.services.pricing_service import price
from scalepos.validation import NotFoundError, PersistenceError, ValidationError


def _count(model):
    return db.session.query(model).count()


def _stock(product_id):
    return db.session.query(Product.stock_quantity).filter_by(id=product_id).scalar()


@pytest.mark.smoke
def test_mixed_cart(db_session, kg_product, piece_product, make_payload):
    payload = make_payload(
        {"product_id": kg_product.id, "weight": 0.755, "sell_by_weight": True},
        {"product_id": piece_product.id, "quantity": 3},
    )

    result = checkout_service.record_sale(payload)

    assert result.sale.id is not None
    assert result.sale.status == "completed"
    assert result.summary["subtotal"] == Decimal("60.20")
    assert result.summary["tax_amount"] == Decimal("9.63")
    assert result.summary["total_amount"] == Decimal("69.83")
    assert result.summary["total_weight"] == Decimal("0.755")

    weighed, pieces = result.items
    assert weighed.weight == Decimal("0.755")
    assert weighed.quantity == 1
    assert weighed.line_total == Decimal("30.20")
    assert pieces.weight is None
    assert pieces.quantity == 3
    assert pieces.line_total == Decimal("30.00")

    assert _stock(kg_product.id) == Decimal("24.245")
    # 2 on hand, 3 sold: floors at zero
    assert _stock(piece_product.id) == Decimal("0")
    assert {entry["product_id"] for entry in result.low_stock} == {piece_product.id}
    assert result.loyalty is None


def test_movements_reference_the_sale(db_session, kg_product, piece_product, make_payload):
    result = checkout_service.record_sale(make_payload(
        {"product_id": kg_product.id, "weight": "0.5"},
        {"product_id": piece_product.id, "quantity": 5},
    ))

    movements = (
        db_session.query(InventoryMovement)
        .filter_by(reference_sale_id=result.sale.id)
        .order_by(InventoryMovement.id)
        .all()
    )
    assert [m.product_id for m in movements] == [kg_product.id, piece_product.id]

    piece_movement = movements[1]
    assert piece_movement.quantity_delta == Decimal("-5")
    assert piece_movement.previous_stock == Decimal("2")
    assert piece_movement.new_stock == Decimal("0")
    assert piece_movement.notes == "Sale: 5 units"


def test_customer_earns_points(db_session, kg_product, piece_product, customer, make_payload):
    result = checkout_service.record_sale(make_payload(
        {"product_id": kg_product.id, "weight": 0.755},
        {"product_id": piece_product.id, "quantity": 3},
        customer_id=customer.id,
    ))

    assert result.sale.customer_id == customer.id
    assert result.loyalty.ok
    assert result.loyalty.points_earned == 6

    account = db_session.get(CustomerAccount, customer.id)
    assert account.loyalty_points == 10
    assert account.total_spent == Decimal("169.83")


def test_loyalty_failure_keeps_the_sale(db_session, kg_product, customer, make_payload, monkeypatch):
    def boom(customer_id, amount):
        raise OperationalError("UPDATE customer_accounts", {}, Exception("database is locked"))

    monkeypatch.setattr(loyalty_service, "accrue", boom)

    result = checkout_service.record_sale(make_payload(
        {"product_id": kg_product.id, "weight": 1},
        customer_id=customer.id,
    ))

    assert not result.loyalty.ok
    assert db_session.get(Sale, result.sale.id) is not None
    assert _stock(kg_product.id) == Decimal("24")
    assert db_session.get(CustomerAccount, customer.id).loyalty_points == 4


def test_line_priced_on_captured_weight(db_session, kg_product, make_payload):
    result = checkout_service.record_sale(make_payload(
        {"product_id": kg_product.id, "weight": "0.7556"},
    ))

    line = result.items[0]
    # 0.7556 kg x $40 = 30.224, the same figure the calculator quotes
    assert line.line_total == Decimal("30.22")
    assert line.line_total == price(kg_product, Decimal("0.7556")).total
    assert line.weight == Decimal("0.756")
    assert result.summary["subtotal"] == Decimal("30.22")


def test_gram_product_sale(db_session, gram_product, make_payload):
    result = checkout_service.record_sale(make_payload(
        {"product_id": gram_product.id, "weight": "0.012"},
    ))

    assert result.items[0].line_total == Decimal("10.20")
    assert result.items[0].unit_price == Decimal("0.85")
    assert _stock(gram_product.id) == Decimal("2.988")


def test_register_price_overrides_catalog(db_session, kg_product, make_payload):
    result = checkout_service.record_sale(make_payload(
        {"product_id": kg_product.id, "weight": 2, "unit_price": "35.50"},
    ))

    assert result.items[0].unit_price == Decimal("35.50")
    assert result.items[0].line_total == Decimal("71.00")


def test_sale_number_format(db_session, piece_product, make_payload):
    first = checkout_service.record_sale(make_payload({"product_id": piece_product.id}))
    second = checkout_service.record_sale(make_payload({"product_id": piece_product.id}))

    pattern = re.compile(r"^WS-\d{13}-[0-9A-F]{8}$")
    assert pattern.match(first.sale.sale_number)
    assert pattern.match(second.sale.sale_number)
    assert first.sale.sale_number != second.sale.sale_number


def test_generate_sale_number_uses_prefix_and_time():
    number = checkout_service.generate_sale_number("POS", now=datetime(2026, 1, 1))
    assert number.startswith("POS-1767225600000-")


@pytest.mark.parametrize(
    "item, message",
    [
        ({"weight": 0}, "greater than 0"),
        ({"weight": -1}, "greater than 0"),
        ({"weight": "0.0004"}, "at least 0.001"),
        ({"weight": 51}, "50"),
        ({"weight": "abc"}, "weight"),
        ({"weight": 1, "sell_by_weight": False}, "mismatch"),
        ({"weight": 1, "unit_price": -2}, "unit_price"),
    ],
)
def test_invalid_weighed_lines_write_nothing(db_session, kg_product, make_payload, item, message):
    payload = make_payload({"product_id": kg_product.id, **item})

    with pytest.raises(ValidationError) as exc:
        checkout_service.record_sale(payload)

    assert message in str(exc.value)
    assert _count(Sale) == 0
    assert _count(InventoryMovement) == 0
    assert _stock(kg_product.id) == Decimal("25")


def test_invalid_cart_shapes(db_session, piece_product, make_payload):
    with pytest.raises(ValidationError):
        checkout_service.record_sale(make_payload())
    with pytest.raises(ValidationError):
        checkout_service.record_sale(make_payload({"product_id": piece_product.id, "quantity": 0}))
    with pytest.raises(ValidationError):
        checkout_service.record_sale({"items": [{"product_id": piece_product.id}]})


def test_inactive_product_rejected(db_session, piece_product, make_payload):
    piece_product.is_active = False
    db_session.commit()

    with pytest.raises(ValidationError):
        checkout_service.record_sale(make_payload({"product_id": piece_product.id}))


def test_unknown_product_and_customer(db_session, piece_product, make_payload):
    with pytest.raises(NotFoundError):
        checkout_service.record_sale(make_payload({"product_id": 9999}))

    with pytest.raises(NotFoundError):
        checkout_service.record_sale(make_payload({"product_id": piece_product.id}, customer_id=9999))

    assert _count(Sale) == 0


def test_failed_item_insert_rolls_back_header(db_session, piece_product, make_payload, monkeypatch):
    def broken_insert(sale_id, items):
        raise OperationalError("INSERT INTO weight_sale_items", {}, Exception("disk I/O error"))

    monkeypatch.setattr(checkout_service, "insert_sale_items", broken_insert)

    with pytest.raises(PersistenceError) as exc:
        checkout_service.record_sale(make_payload({"product_id": piece_product.id}))

    assert str(exc.value) == "Failed to create sale"
    assert _count(Sale) == 0
    assert _count(SaleLineItem) == 0
    assert _stock(piece_product.id) == Decimal("2")


def test_failed_reconcile_rolls_back_everything(db_session, kg_product, piece_product, make_payload, monkeypatch):
    real_reconcile = checkout_service.reconcile
    calls = []

    def flaky_reconcile(product_id, quantity, weight, sell_by_weight, sale_id):
        calls.append(product_id)
        if len(calls) > 1:
            raise StockConflictError("stock kept changing")
        return real_reconcile(product_id, quantity, weight, sell_by_weight, sale_id)

    monkeypatch.setattr(checkout_service, "reconcile", flaky_reconcile)

    with pytest.raises(PersistenceError):
        checkout_service.record_sale(make_payload(
            {"product_id": kg_product.id, "weight": 1},
            {"product_id": piece_product.id},
        ))

    assert calls == [kg_product.id, piece_product.id]
    assert _count(Sale) == 0
    assert _count(SaleLineItem) == 0
    assert _count(InventoryMovement) == 0
    assert _stock(kg_product.id) == Decimal("25")


def test_get_sale(db_session, piece_product, make_payload):
    result = checkout_service.record_sale(make_payload({"product_id": piece_product.id}))

    assert checkout_service.get_sale(result.sale.id).sale_number == result.sale.sale_number
    with pytest.raises(NotFoundError):
        checkout_service.get_sale(result.sale.id + 100)


def test_list_weight_sales(db_session, kg_product, piece_product, make_payload):
    checkout_service.record_sale(make_payload({"product_id": piece_product.id}))
    checkout_service.record_sale(make_payload(
        {"product_id": kg_product.id, "weight": "1.250"},
        {"product_id": kg_product.id, "weight": "0.250"},
    ))

    listing = checkout_service.list_weight_sales(page=1, limit=10)

    assert listing["pagination"] == {"page": 1, "limit": 10, "total": 2, "total_pages": 1}
    newest, oldest = listing["sales"]
    assert newest["weight_info"]["has_weight_items"] is True
    assert newest["weight_info"]["total_weight"] == 1.5
    assert newest["weight_info"]["weight_items_count"] == 2
    assert len(newest["weight_info"]["weight_items"]) == 2
    assert oldest["weight_info"]["has_weight_items"] is False

    compact = checkout_service.list_weight_sales(page=2, limit=1, include_weight=False)
    assert compact["pagination"]["total_pages"] == 2
    assert len(compact["sales"]) == 1
    assert "weight_items" not in compact["sales"][0]["weight_info"]
