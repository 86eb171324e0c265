# Overview: Service-layer operations for customer tabs; applies credit_service decisions to the database.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Customer, TabSettlement
from ..money import to_number
from .concurrency import lock_for_update, run_with_retry
from .credit_service import TabChargeResult, TabStatus, credit_summary, validate_tab_charge, validate_tab_settlement
from .payment_service import SETTLEMENT_PAYMENT_TYPES, PaymentType, validate_gcash_reference


class TabError(Exception):
    """Raised for tab operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CustomerNotFound(TabError):
    pass


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise CustomerNotFound("Customer not found")
    return customer


def get_credit_position(customer: Customer) -> dict:
    return credit_summary(to_number(customer.tab_balance), to_number(customer.credit_limit))


def get_tab_history(customer_id: int) -> dict:
    customer = get_customer(customer_id)
    settlements = db.session.query(TabSettlement).filter_by(
        customer_id=customer_id
    ).order_by(TabSettlement.created_at.desc(), TabSettlement.id.desc()).all()

    return {
        "customer": {
            "id": customer.id,
            "name": customer.name,
            "tab_status": customer.tab_status,
            **get_credit_position(customer),
        },
        "settlements": [s.to_dict() for s in settlements],
    }


def apply_tab_charge(
    customer: Customer,
    amount: float,
    allow_override: bool = False,
) -> TabChargeResult:
    """
    Validate and apply a charge to a (locked) customer row. Does not commit.

    Raises:
        TabError: If the charge is rejected; details carry would_exceed_by
    """
    result = validate_tab_charge(
        amount=amount,
        current_balance=to_number(customer.tab_balance),
        credit_limit=to_number(customer.credit_limit),
        tab_status=customer.tab_status,
        allow_override=allow_override,
    )
    if not result.valid:
        details = {}
        if result.would_exceed_by is not None:
            details["would_exceed_by"] = result.would_exceed_by
        raise TabError(result.error, details=details)

    customer.tab_balance = Decimal(str(result.new_balance))
    return result


def settle_tab(
    customer_id: int,
    amount: float,
    payment_method: str,
    payment_info: str | None = None,
    user_id: int | None = None,
) -> TabSettlement:
    """
    Record a payment against a customer's tab and lower the balance.

    Raises:
        TabError: If method/reference invalid or the amount is rejected
        CustomerNotFound: If the customer does not exist
    """
    try:
        method = PaymentType(payment_method)
    except ValueError:
        method = None
    if method not in SETTLEMENT_PAYMENT_TYPES:
        raise TabError("Payment method must be 'Cash' or 'GCash'")

    reference = None
    if method is PaymentType.GCASH:
        ref_check = validate_gcash_reference(payment_info)
        if not ref_check.valid:
            raise TabError(ref_check.error)
        reference = payment_info.strip()

    def _op():
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise CustomerNotFound("Customer not found")

        previous_balance = to_number(customer.tab_balance)
        result = validate_tab_settlement(amount, previous_balance)
        if not result.valid:
            raise TabError(result.error, details={"current_balance": previous_balance})

        settlement = TabSettlement(
            customer_id=customer.id,
            amount=Decimal(str(amount)),
            payment_type=method.value,
            payment_info=reference,
            previous_balance=Decimal(str(previous_balance)),
            new_balance=Decimal(str(result.new_balance)),
            user_id=user_id,
        )
        customer.tab_balance = Decimal(str(result.new_balance))

        db.session.add(settlement)
        db.session.commit()
        return settlement

    return run_with_retry(_op)


def set_tab_status(customer_id: int, status: str) -> Customer:
    try:
        new_status = TabStatus(status)
    except ValueError:
        raise TabError(f"Invalid tab status: {status}. Must be one of {[s.value for s in TabStatus]}")

    def _op():
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise CustomerNotFound("Customer not found")
        customer.tab_status = new_status.value
        db.session.commit()
        return customer

    return run_with_retry(_op)
