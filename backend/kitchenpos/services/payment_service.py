# Overview: Tender validation for cash, GCash and split payments; pure, no database work.

"""
Payment Validation

TENDER TYPES:
- Cash: change calculated on over-tender
- GCash: mobile wallet, requires an alphanumeric reference (>= 10 chars)
- Tab: charged to the customer's store credit (see credit_service)
- Split: up to two Cash/GCash components covering the total
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from ..money import format_amount, round2


class PaymentType(str, Enum):
    CASH = "Cash"
    GCASH = "GCash"
    TAB = "Tab"
    SPLIT = "Split"


SPLIT_COMPONENT_TYPES = (PaymentType.CASH, PaymentType.GCASH)
SETTLEMENT_PAYMENT_TYPES = (PaymentType.CASH, PaymentType.GCASH)

GCASH_REF_MIN_LENGTH = 10
MAX_SPLIT_COMPONENTS = 2

_ALPHANUMERIC = re.compile(r"^[a-zA-Z0-9]+$")


@dataclass(frozen=True)
class PaymentCheck:
    valid: bool
    error: str | None = None
    change: float | None = None
    total_paid: float | None = None


@dataclass(frozen=True)
class SplitComponent:
    method: PaymentType
    amount: float
    reference: str | None = None

    def to_dict(self) -> dict:
        data = {"method": self.method.value, "amount": self.amount}
        if self.reference:
            data["reference"] = self.reference
        return data


# =============================================================================
# CASH
# =============================================================================

def calculate_change(total: float, amount_tendered: float) -> float:
    if amount_tendered < total:
        raise ValueError("Amount tendered is less than transaction total")
    return round2(amount_tendered - total)


def validate_cash_payment(total: float, amount_tendered: float) -> PaymentCheck:
    if total <= 0:
        return PaymentCheck(valid=False, error="Transaction total must be greater than 0")
    if amount_tendered <= 0:
        return PaymentCheck(valid=False, error="Amount tendered must be greater than 0")
    if amount_tendered < total:
        return PaymentCheck(
            valid=False,
            error=f"Insufficient amount. Need {format_amount(total - amount_tendered)} more",
        )
    return PaymentCheck(
        valid=True,
        change=calculate_change(total, amount_tendered),
        total_paid=round2(amount_tendered),
    )


# =============================================================================
# GCASH
# =============================================================================

def validate_gcash_reference(reference: str | None) -> PaymentCheck:
    trimmed = (reference or "").strip()
    if not trimmed:
        return PaymentCheck(valid=False, error="GCash reference number is required")
    if len(trimmed) < GCASH_REF_MIN_LENGTH:
        return PaymentCheck(
            valid=False,
            error=f"GCash reference must be at least {GCASH_REF_MIN_LENGTH} characters",
        )
    if not _ALPHANUMERIC.match(trimmed):
        return PaymentCheck(valid=False, error="GCash reference must contain only letters and numbers")
    return PaymentCheck(valid=True)


# =============================================================================
# SPLIT
# =============================================================================

def validate_split_payment(total: float, components: Iterable[SplitComponent]) -> PaymentCheck:
    components = list(components)
    if not components:
        return PaymentCheck(valid=False, error="At least one payment component required")
    if len(components) > MAX_SPLIT_COMPONENTS:
        return PaymentCheck(valid=False, error=f"Maximum {MAX_SPLIT_COMPONENTS} payment components allowed")

    for component in components:
        if component.method not in SPLIT_COMPONENT_TYPES:
            return PaymentCheck(valid=False, error=f"{component.method.value} cannot be part of a split payment")
        if component.amount <= 0:
            return PaymentCheck(valid=False, error=f"{component.method.value} amount must be greater than 0")
        if component.method is PaymentType.GCASH:
            ref_check = validate_gcash_reference(component.reference)
            if not ref_check.valid:
                return ref_check

    total_paid = 0.0
    for component in components:
        total_paid = round2(total_paid + component.amount)

    if total_paid < total:
        return PaymentCheck(
            valid=False,
            error=f"Insufficient payment. Need {format_amount(round2(total - total_paid))} more",
        )

    return PaymentCheck(valid=True, total_paid=total_paid, change=round2(total_paid - total))


def parse_split_components(raw: object) -> list[SplitComponent]:
    """
    Build SplitComponents from request JSON.

    Raises ValueError for malformed entries.
    """
    if not isinstance(raw, list):
        raise ValueError("components must be a list")

    parsed = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError("Each component must be an object")
        try:
            method = PaymentType(entry.get("method"))
            amount = float(entry.get("amount"))
        except (TypeError, ValueError):
            raise ValueError("Each component needs a valid method and amount")
        reference = entry.get("reference")
        parsed.append(SplitComponent(method=method, amount=amount, reference=reference.strip() if isinstance(reference, str) else None))
    return parsed


def serialize_split_payment(components: Iterable[SplitComponent], total_paid: float, change: float) -> str:
    """JSON stored in Transaction.payment_info for split tenders."""
    return json.dumps({
        "components": [c.to_dict() for c in components],
        "total_paid": total_paid,
        "change_given": change,
    })
