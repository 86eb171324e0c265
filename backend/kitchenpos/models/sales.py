from __future__ import annotations

from ..extensions import db
from ..money import to_number
from kitchenpos.time_utils import to_utc_z


class Transaction(db.Model):
    """
    Finalized sale record.

    Everything except the void overlay (is_voided, voided_at, voided_by_*,
    void_reason) is immutable once written. A transaction is voided at most
    once, within the void window, by a user holding VOID_TRANSACTION.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_created_voided", "created_at", "is_voided"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    change_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Cash | GCash | Tab | Split
    payment_type = db.Column(db.String(16), nullable=False)
    payment_info = db.Column(db.Text, nullable=True)
    credit_override = db.Column(db.Boolean, nullable=False, default=False)

    is_voided = db.Column(db.Boolean, nullable=False, default=False, index=True)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    voided_by_name = db.Column(db.String(128), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    user = db.relationship("User", foreign_keys=[user_id])
    voided_by = db.relationship("User", foreign_keys=[voided_by_id])
    items = db.relationship("TransactionItem", back_populates="transaction", lazy=True, cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} order={self.order_number!r} voided={self.is_voided}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "subtotal": to_number(self.subtotal),
            "discount": to_number(self.discount),
            "tax_amount": to_number(self.tax_amount),
            "total": to_number(self.total),
            "paid_amount": to_number(self.paid_amount),
            "change_amount": to_number(self.change_amount),
            "payment_type": self.payment_type,
            "payment_info": self.payment_info,
            "credit_override": self.credit_override,
            "is_voided": self.is_voided,
            "voided_at": to_utc_z(self.voided_at),
            "voided_by_id": self.voided_by_id,
            "voided_by_name": self.voided_by_name,
            "void_reason": self.void_reason,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class TransactionItem(db.Model):
    __tablename__ = "transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    # Snapshot at sale time
    product_name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    transaction = db.relationship("Transaction", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "price": to_number(self.price),
            "quantity": self.quantity,
            "line_total": to_number(self.line_total),
        }
