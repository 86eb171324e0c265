# Overview: Service-layer operations for transactions; sale creation and voiding.

"""
Transaction Service

WHY: A sale touches three things at once: the transaction record, the
ingredient stock behind each product, and (for tab payments) the
customer's balance. All three are written in one DB transaction.

VOIDS: only the void overlay is written. Stock and tab balances are left
as they are; corrections to those are separate operations.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Customer, Product, RecipeItem, Transaction, TransactionItem, User
from ..money import format_amount, round2, to_number
from kitchenpos.time_utils import utcnow
from .availability_service import AvailabilityStatus, calculate_availability, product_descriptor
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import deduct_for_sale
from .payment_service import (
    PaymentType,
    parse_split_components,
    serialize_split_payment,
    validate_cash_payment,
    validate_gcash_reference,
    validate_split_payment,
)
from .settings_service import tax_rate
from .tab_service import TabError, apply_tab_charge
from .void_service import format_void_reason, validate_void


class TransactionError(Exception):
    """Raised for transaction operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class TransactionNotFound(TransactionError):
    pass


class VoidError(TransactionError):
    """Void rejected by the void-window / reason checks."""


@dataclass(frozen=True)
class SaleLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class TenderResult:
    paid_amount: float
    change_amount: float
    payment_info: str | None = None
    credit_override: bool = False


# =============================================================================
# INPUT PARSING
# =============================================================================

def parse_sale_lines(raw_items) -> list[SaleLine]:
    if not isinstance(raw_items, list) or not raw_items:
        raise TransactionError("Transaction must contain at least one item")

    lines = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise TransactionError("Each item must be an object")
        product_id = raw.get("product_id")
        quantity = raw.get("quantity")
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            raise TransactionError("product_id must be an integer")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise TransactionError("quantity must be a positive integer")
        lines.append(SaleLine(product_id=product_id, quantity=quantity))
    return lines


def _merge_lines(lines: list[SaleLine]) -> dict[int, int]:
    merged: dict[int, int] = {}
    for line in lines:
        merged[line.product_id] = merged.get(line.product_id, 0) + line.quantity
    return merged


def _next_order_number() -> str:
    return f"T{utcnow():%Y%m%d%H%M%S}-{secrets.token_hex(3).upper()}"


# =============================================================================
# SALE CREATION
# =============================================================================

def _load_products(product_ids) -> dict[int, Product]:
    products = db.session.query(Product).options(
        selectinload(Product.recipe_items).selectinload(RecipeItem.ingredient),
        selectinload(Product.linked_ingredient),
    ).filter(Product.id.in_(product_ids)).all()
    return {p.id: p for p in products}


def _check_stock(product: Product, requested: int) -> None:
    availability = calculate_availability(product_descriptor(product))
    status = availability.status

    if status is AvailabilityStatus.OUT:
        raise TransactionError(
            f"{product.name} is out of stock",
            details={"product_id": product.id, "availability": availability.to_dict()},
        )
    if status in (AvailabilityStatus.AVAILABLE, AvailabilityStatus.LOW, AvailabilityStatus.CRITICAL):
        limit = availability.quantity_available
        if limit is not None and requested > limit:
            raise TransactionError(
                f"Only {limit} of {product.name} available",
                details={"product_id": product.id, "requested_quantity": requested, "available": limit},
            )


def _collect_tender(
    payment_type: PaymentType,
    total: float,
    *,
    customer: Customer | None,
    amount_tendered: float | None,
    reference: str | None,
    components,
    allow_override: bool,
) -> TenderResult:
    if payment_type is PaymentType.CASH:
        check = validate_cash_payment(total, amount_tendered if amount_tendered is not None else 0)
        if not check.valid:
            raise TransactionError(check.error)
        return TenderResult(paid_amount=check.total_paid, change_amount=check.change)

    if payment_type is PaymentType.GCASH:
        if total <= 0:
            raise TransactionError("Transaction total must be greater than 0")
        check = validate_gcash_reference(reference)
        if not check.valid:
            raise TransactionError(check.error)
        return TenderResult(paid_amount=total, change_amount=0.0, payment_info=reference.strip())

    if payment_type is PaymentType.TAB:
        if customer is None:
            raise TransactionError("Tab payments require a customer")
        try:
            charge = apply_tab_charge(customer, total, allow_override=allow_override)
        except TabError as exc:
            raise TransactionError(str(exc), details=exc.details)
        return TenderResult(
            paid_amount=total,
            change_amount=0.0,
            payment_info=f"Tab balance {format_amount(charge.new_balance)}",
            credit_override=charge.override_applied,
        )

    if payment_type is PaymentType.SPLIT:
        try:
            parsed = parse_split_components(components)
        except ValueError as exc:
            raise TransactionError(str(exc))
        check = validate_split_payment(total, parsed)
        if not check.valid:
            raise TransactionError(check.error)
        return TenderResult(
            paid_amount=check.total_paid,
            change_amount=check.change,
            payment_info=serialize_split_payment(parsed, check.total_paid, check.change),
        )

    raise TransactionError(f"Unsupported payment type: {payment_type.value}")


def create_transaction(
    *,
    user_id: int | None,
    items,
    payment_type: str,
    customer_id: int | None = None,
    discount: float = 0,
    amount_tendered: float | None = None,
    reference: str | None = None,
    components=None,
    allow_override: bool = False,
) -> Transaction:
    """
    Ring up a sale: price lines, check derived stock, take payment, consume
    ingredients, and write the transaction.

    allow_override must only be True when the caller holds
    OVERRIDE_CREDIT_LIMIT; it is not re-checked here.

    Raises:
        TransactionError: If items, stock, or payment are invalid
    """
    try:
        tender_type = PaymentType(payment_type)
    except ValueError:
        raise TransactionError(
            f"Invalid payment type: {payment_type}. Must be one of {[p.value for p in PaymentType]}"
        )

    lines = parse_sale_lines(items)
    requested = _merge_lines(lines)

    if discount is None or discount < 0:
        raise TransactionError("discount must be >= 0")

    def _op():
        products = _load_products(list(requested))
        missing = [pid for pid in requested if pid not in products]
        if missing:
            raise TransactionError("Product not found", details={"product_ids": missing})

        subtotal = 0.0
        for product_id, quantity in requested.items():
            product = products[product_id]
            if not product.is_active:
                raise TransactionError(f"{product.name} is not available for sale")
            _check_stock(product, quantity)
            subtotal = round2(subtotal + round2(to_number(product.price) * quantity))

        if discount > subtotal:
            raise TransactionError("Discount cannot exceed subtotal")
        taxable = round2(subtotal - discount)
        tax_amount = round2(taxable * tax_rate())
        total = round2(taxable + tax_amount)

        customer = None
        if customer_id is not None:
            customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
            if not customer:
                raise TransactionError("Customer not found")

        tender = _collect_tender(
            tender_type,
            total,
            customer=customer,
            amount_tendered=amount_tendered,
            reference=reference,
            components=components,
            allow_override=allow_override,
        )

        transaction = Transaction(
            order_number=_next_order_number(),
            customer_id=customer.id if customer else None,
            user_id=user_id,
            subtotal=Decimal(str(subtotal)),
            discount=Decimal(str(round2(discount))),
            tax_amount=Decimal(str(tax_amount)),
            total=Decimal(str(total)),
            paid_amount=Decimal(str(tender.paid_amount)),
            change_amount=Decimal(str(tender.change_amount)),
            payment_type=tender_type.value,
            payment_info=tender.payment_info,
            credit_override=tender.credit_override,
            created_at=utcnow(),
        )

        for line in lines:
            product = products[line.product_id]
            price = to_number(product.price)
            transaction.items.append(TransactionItem(
                product_id=product.id,
                product_name=product.name,
                price=Decimal(str(price)),
                quantity=line.quantity,
                line_total=Decimal(str(round2(price * line.quantity))),
            ))
            deduct_for_sale(product, line.quantity, change_id=transaction.order_number, user_id=user_id)

        db.session.add(transaction)
        db.session.commit()
        return transaction

    return run_with_retry(_op)


# =============================================================================
# VOIDS
# =============================================================================

def void_transaction(
    transaction_id: int,
    user: User,
    reason: str | None,
    custom_reason: str | None = None,
    now: datetime | None = None,
) -> Transaction:
    """
    Mark a transaction voided.

    Checks run in order: already voided, void window, reason. Permission to
    void is enforced by the caller.

    Raises:
        TransactionNotFound: If the transaction does not exist
        VoidError: If any void check fails
    """
    def _op():
        transaction = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
        if not transaction:
            raise TransactionNotFound("Transaction not found")

        check = validate_void(
            is_voided=transaction.is_voided,
            created_at=transaction.created_at,
            reason=reason,
            custom_reason=custom_reason,
            now=now,
        )
        if not check.valid:
            raise VoidError(check.error)

        transaction.is_voided = True
        transaction.voided_at = now or utcnow()
        transaction.voided_by_id = user.id
        transaction.voided_by_name = user.display_name
        transaction.void_reason = format_void_reason(reason, custom_reason)

        db.session.commit()
        return transaction

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_transaction(transaction_id: int) -> Transaction:
    transaction = db.session.get(Transaction, transaction_id)
    if not transaction:
        raise TransactionNotFound("Transaction not found")
    return transaction


def list_transactions(
    start: datetime | None = None,
    end: datetime | None = None,
    include_voided: bool = True,
    limit: int = 100,
) -> list[Transaction]:
    query = db.session.query(Transaction)
    if start is not None:
        query = query.filter(Transaction.created_at >= start)
    if end is not None:
        query = query.filter(Transaction.created_at < end)
    if not include_voided:
        query = query.filter(Transaction.is_voided.is_(False))
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).all()
