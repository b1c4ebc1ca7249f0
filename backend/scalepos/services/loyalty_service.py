"""
Loyalty accrual after a completed sale.

Accrual runs after the sale has committed, in its own transaction. The
checkout path calls accrue_detached(), which never raises: a failure is
rolled back, logged and reported in the returned outcome, and the sale
stands.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..config import current_policy
from ..extensions import db
from ..models import CustomerAccount
from ..numbers import ZERO, round_money
from ..validation import ValidationError
from .concurrency import run_with_retry
from .ledger_store import get_customer_stats, update_customer_stats
from scalepos.time_utils import utcnow


@dataclass(frozen=True)
class LoyaltyOutcome:
    customer_id: int
    ok: bool
    points_earned: int = 0
    account: Optional[CustomerAccount] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "ok": self.ok,
            "points_earned": self.points_earned,
            "loyalty_points": self.account.loyalty_points if self.account is not None else None,
            "error": self.error,
        }


def points_for(sale_amount, amount_per_point=None) -> int:
    """floor(sale_amount / amount_per_point); never negative."""
    per_point = Decimal(str(amount_per_point)) if amount_per_point is not None else current_policy().amount_per_loyalty_point
    amount = Decimal(str(sale_amount))
    if amount <= 0:
        return 0
    return int((amount / per_point).to_integral_value(rounding=ROUND_FLOOR))


def accrue(customer_id: int, sale_amount) -> CustomerAccount:
    """
    Add sale_amount to the customer's spend and award points.

    Commits its own transaction; optimistic-lock conflicts are retried.
    Raises NotFoundError for an unknown customer.
    """
    amount = Decimal(str(sale_amount))
    if amount < 0:
        raise ValidationError("sale_amount must not be negative")
    earned = points_for(amount)

    def _op():
        account = get_customer_stats(customer_id)
        update_customer_stats(
            account,
            total_spent=round_money((account.total_spent or ZERO) + amount),
            loyalty_points=(account.loyalty_points or 0) + earned,
            last_visit=utcnow(),
        )
        db.session.commit()
        return account

    return run_with_retry(_op)


def accrue_detached(customer_id: int, sale_amount) -> LoyaltyOutcome:
    """Best-effort accrue(): failures are logged and returned, never raised."""
    try:
        account = accrue(customer_id, sale_amount)
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception(
            "Loyalty accrual failed for customer %s (amount %s)", customer_id, sale_amount
        )
        return LoyaltyOutcome(customer_id=customer_id, ok=False, error=str(exc) or exc.__class__.__name__)

    return LoyaltyOutcome(
        customer_id=customer_id,
        ok=True,
        points_earned=points_for(sale_amount),
        account=account,
    )


def open_account(name: str, email: str | None = None) -> CustomerAccount:
    """Create an empty loyalty account."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    account = CustomerAccount(name=name, email=(email or None), total_spent=ZERO, loyalty_points=0)
    db.session.add(account)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("A customer with this email already exists")
    return account
