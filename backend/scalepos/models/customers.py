from __future__ import annotations

from ..extensions import db
from ..numbers import json_number
from scalepos.time_utils import to_utc_z


class CustomerAccount(db.Model):
    """
    Customer spend and loyalty totals.

    Denormalized aggregates updated after each completed sale:
    total_spent only grows under normal sale flow and loyalty_points only
    grows through accrual.
    """
    __tablename__ = "customer_accounts"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_customer_accounts_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    total_spent = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    last_visit = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "total_spent": json_number(self.total_spent),
            "loyalty_points": self.loyalty_points,
            "last_visit": to_utc_z(self.last_visit) if self.last_visit else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
