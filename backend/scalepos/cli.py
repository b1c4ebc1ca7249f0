# Overview: Flask CLI command groups for bootstrap, stock maintenance and reports.

# backend/scalepos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to scalepos (PowerShell: $env:FLASK_APP="scalepos").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Add a small mixed catalog (kg, g and piece products) and one customer.
#
# Inventory:
# - python -m flask inventory restock 3 12.5 --notes "Morning delivery"
#   Add stock to a product and log a restock movement.
#
# Reports:
# - python -m flask reports weight-sales --start 2026-03-01 --end 2026-03-31
#   Print the weight sales report as JSON.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import CustomerAccount, Product, Sale
from .services import inventory_service, loyalty_service, products_service, reporting_service
from .validation import NotFoundError, PersistenceError, ValidationError

DEMO_PRODUCTS = [
    {"sku": "DEMO-TOMATO", "name": "Tomato", "unit_price": "40", "unit": "kg", "sell_by_weight": True, "stock_quantity": "25"},
    {"sku": "DEMO-SAFFRON", "name": "Saffron", "unit_price": "0.85", "unit": "g", "sell_by_weight": True, "stock_quantity": "2"},
    {"sku": "DEMO-SODA", "name": "Soda 600ml", "unit_price": "10", "unit": "piece", "sell_by_weight": False, "stock_quantity": "48"},
]


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate every table. Sales, movements and loyalty totals are lost."""
    if not yes:
        click.confirm("WARN Sales, inventory movements and customers will be deleted. Continue?", abort=True)

    sales = db.session.query(Sale).count()
    db.session.remove()
    db.drop_all()
    db.create_all()
    click.echo(f"DELETE Dropped {sales} sales with their items and movements")
    click.echo("PASS Database recreated")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Add demo products and a demo customer (skips rows that already exist)."""
    db.create_all()
    for data in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(sku=data["sku"]).first():
            click.echo(f"WARN  Product '{data['sku']}' already exists, skipping...")
            continue
        product = products_service.create_product(dict(data))
        click.echo(f"PASS Created product: {product.name} (ID: {product.id}, unit: {product.unit})")

    if not db.session.query(CustomerAccount).filter_by(email="demo@scalepos.local").first():
        account = loyalty_service.open_account("Demo Customer", "demo@scalepos.local")
        click.echo(f"PASS Created customer: {account.name} (ID: {account.id})")


@click.group('inventory')
def inventory_group():
    """Stock maintenance commands."""


@inventory_group.command('restock')
@click.argument('product_id', type=int)
@click.argument('quantity')
@click.option('--notes', default=None, help='Movement note')
@with_appcontext
def restock(product_id, quantity, notes):
    """Add QUANTITY (in the product's unit) to PRODUCT_ID."""
    try:
        result = inventory_service.restock(product_id, quantity, notes=notes)
    except (ValidationError, NotFoundError, PersistenceError) as e:
        raise click.ClickException(str(e))
    movement = result.movement
    click.echo(f"PASS Stock {movement.previous_stock} -> {movement.new_stock} (movement {movement.id})")


@click.group('reports')
def reports_group():
    """Read-only reports."""


@reports_group.command('weight-sales')
@click.option('--start', default=None, help='Start date/datetime (ISO-8601)')
@click.option('--end', default=None, help='End date/datetime (ISO-8601, dates include the whole day)')
@with_appcontext
def weight_sales(start, end):
    """Print the weight sales report as JSON."""
    try:
        report = reporting_service.weight_sales_report(start, end)
    except reporting_service.ReportError as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(report, indent=2))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(reports_group)
