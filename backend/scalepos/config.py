# backend/scalepos/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/scalepos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///scalepos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Register/selector front-ends allowed to call the API from a browser
    CORS_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    )

    # Business policy. Strings so env overrides and defaults parse the same way.
    TAX_RATE = os.environ.get("TAX_RATE", "0.16")
    MAX_WEIGHT = os.environ.get("MAX_WEIGHT", "50")
    MAX_GRAM_UNIT_WEIGHT = os.environ.get("MAX_GRAM_UNIT_WEIGHT", "5")
    LOW_STOCK_THRESHOLD = os.environ.get("LOW_STOCK_THRESHOLD", "5")
    LOYALTY_AMOUNT_PER_POINT = os.environ.get("LOYALTY_AMOUNT_PER_POINT", "10")
    SALE_NUMBER_PREFIX = os.environ.get("SALE_NUMBER_PREFIX", "WS")
    STOCK_UPDATE_ATTEMPTS = int(os.environ.get("STOCK_UPDATE_ATTEMPTS", "5"))


@dataclass(frozen=True)
class SalesPolicy:
    """
    Pricing, stock and loyalty thresholds used by the checkout services.

    These are catalog/business policy, not physical limits; every service
    reads them from here instead of carrying its own literals.
    """
    tax_rate: Decimal = Decimal("0.16")
    max_weight: Decimal = Decimal("50")
    max_gram_unit_weight: Decimal = Decimal("5")
    low_stock_threshold: Decimal = Decimal("5")
    amount_per_loyalty_point: Decimal = Decimal("10")
    sale_number_prefix: str = "WS"
    stock_update_attempts: int = 5

    @classmethod
    def from_config(cls, config: Mapping) -> "SalesPolicy":
        defaults = cls()

        def _dec(key: str, fallback: Decimal) -> Decimal:
            value = config.get(key)
            return fallback if value is None else Decimal(str(value))

        return cls(
            tax_rate=_dec("TAX_RATE", defaults.tax_rate),
            max_weight=_dec("MAX_WEIGHT", defaults.max_weight),
            max_gram_unit_weight=_dec("MAX_GRAM_UNIT_WEIGHT", defaults.max_gram_unit_weight),
            low_stock_threshold=_dec("LOW_STOCK_THRESHOLD", defaults.low_stock_threshold),
            amount_per_loyalty_point=_dec("LOYALTY_AMOUNT_PER_POINT", defaults.amount_per_loyalty_point),
            sale_number_prefix=str(config.get("SALE_NUMBER_PREFIX") or defaults.sale_number_prefix),
            stock_update_attempts=int(config.get("STOCK_UPDATE_ATTEMPTS") or defaults.stock_update_attempts),
        )


def current_policy() -> SalesPolicy:
    """Policy for the active Flask app, or the defaults outside an app context."""
    from flask import current_app, has_app_context

    if not has_app_context():
        return SalesPolicy()
    return SalesPolicy.from_config(current_app.config)
