from __future__ import annotations

from ..extensions import db
from ..money import to_number
from kitchenpos.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data and tab (store credit) account.

    tab_balance rises on tab charges and falls on settlements.
    credit_limit of 0 means tabs are disabled for this customer.
    tab_status is one of active / suspended / frozen (see TabStatus).
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=True, unique=True)
    phone = db.Column(db.String(32), nullable=True)

    tab_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    credit_limit = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tab_status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} tab_balance={self.tab_balance}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "tab_balance": to_number(self.tab_balance),
            "credit_limit": to_number(self.credit_limit),
            "tab_status": self.tab_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class TabSettlement(db.Model):
    """
    Append-only record of a payment made against a customer's tab.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "tab_settlements"
    __table_args__ = (
        db.Index("ix_tab_settlements_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_type = db.Column(db.String(16), nullable=False)  # Cash, GCash
    payment_info = db.Column(db.String(64), nullable=True)
    previous_balance = db.Column(db.Numeric(12, 2), nullable=False)
    new_balance = db.Column(db.Numeric(12, 2), nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    customer = db.relationship("Customer", backref=db.backref("tab_settlements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "amount": to_number(self.amount),
            "payment_type": self.payment_type,
            "payment_info": self.payment_info,
            "previous_balance": to_number(self.previous_balance),
            "new_balance": to_number(self.new_balance),
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
