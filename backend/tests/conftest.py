"""
Pytest fixtures for ScalePOS backend tests.

Provides an in-memory database, per-test clean tables, a test client and a
small mixed catalog (kg, g and piece products).
"""

from decimal import Decimal

import pytest

from scalepos import create_app
from scalepos.extensions import db
from scalepos.models import CustomerAccount, Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def kg_product(db_session):
    """Tomatoes at $40/kg, 25 kg on hand."""
    product = Product(
        sku="TOMATO",
        name="Tomato",
        unit_price=Decimal("40"),
        unit="kg",
        sell_by_weight=True,
        stock_quantity=Decimal("25"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def gram_product(db_session):
    """Saffron priced per gram ($0.85/g), 3 units on hand."""
    product = Product(
        sku="SAFFRON",
        name="Saffron",
        unit_price=Decimal("0.85"),
        unit="g",
        sell_by_weight=True,
        stock_quantity=Decimal("3"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def piece_product(db_session):
    """Soda at $10 each, 2 on hand."""
    product = Product(
        sku="SODA",
        name="Soda 600ml",
        unit_price=Decimal("10"),
        unit="piece",
        sell_by_weight=False,
        stock_quantity=Decimal("2"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def customer(db_session):
    account = CustomerAccount(name="Ana", email="ana@example.com", total_spent=Decimal("100.00"), loyalty_points=4)
    db_session.add(account)
    db_session.commit()
    return account


@pytest.fixture
def make_payload():
    """Build a checkout body with defaults for cashier, payment and location."""
    def _make(*items, customer_id=None, **extra) -> dict:
        payload = {
            "cashier_id": "cashier-1",
            "payment_method": "cash",
            "location_id": "store-1",
            "items": list(items),
        }
        if customer_id is not None:
            payload["customer_id"] = customer_id
        payload.update(extra)
        return payload
    return _make
