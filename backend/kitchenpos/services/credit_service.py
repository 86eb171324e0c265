# Overview: Tab (store credit) charge and settlement rules; pure, no database work.

"""
Tab Credit Validation

WHY: A tab is credit extended to a customer. Every charge and settlement
must be checked against the account's status, credit limit and balance
before anything is written.

RULES:
- Charges require an active tab and a non-zero credit limit.
- A charge that would push the balance over the limit fails, unless the
  caller asserts manager override; the override lifts the cap entirely.
- Settlements must be positive and cannot exceed the balance.
- Money is rounded to 2 decimals after every operation.
"""

from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP
from dataclasses import dataclass
from enum import Enum

from ..money import format_amount, round2


class TabStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    FROZEN = "frozen"


class CreditWarningLevel(str, Enum):
    OK = "ok"
    WARNING = "warning"
    EXCEEDED = "exceeded"


CREDIT_WARNING_PERCENT = 80
CREDIT_EXCEEDED_PERCENT = 100


@dataclass(frozen=True)
class TabChargeResult:
    valid: bool
    new_balance: float | None = None
    error: str | None = None
    would_exceed_by: float | None = None
    override_applied: bool = False

    def to_dict(self) -> dict:
        data: dict = {"valid": self.valid}
        if self.new_balance is not None:
            data["new_balance"] = self.new_balance
        if self.error is not None:
            data["error"] = self.error
        if self.would_exceed_by is not None:
            data["would_exceed_by"] = self.would_exceed_by
        if self.override_applied:
            data["override_applied"] = True
        return data


@dataclass(frozen=True)
class TabSettlementResult:
    valid: bool
    new_balance: float | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"valid": self.valid}
        if self.new_balance is not None:
            data["new_balance"] = self.new_balance
        if self.error is not None:
            data["error"] = self.error
        return data


# =============================================================================
# CHARGES
# =============================================================================

def validate_tab_charge(
    amount: float,
    current_balance: float,
    credit_limit: float,
    tab_status: TabStatus | str,
    allow_override: bool = False,
) -> TabChargeResult:
    """
    Validate charging `amount` to a customer's tab.

    allow_override is manager authority asserted by the caller; it is not
    re-checked here.
    """
    if amount <= 0:
        return TabChargeResult(valid=False, error="Payment amount must be positive")

    try:
        status = TabStatus(tab_status)
    except ValueError:
        return TabChargeResult(valid=False, error="Invalid tab status")
    if status is TabStatus.SUSPENDED:
        return TabChargeResult(valid=False, error="Tab is suspended. Cannot charge to this account.")
    if status is TabStatus.FROZEN:
        return TabChargeResult(valid=False, error="Tab is frozen. Cannot charge to this account.")

    if credit_limit == 0:
        return TabChargeResult(
            valid=False,
            error="Customer has no credit limit set. Tab payments not allowed.",
        )

    new_balance = round2(current_balance + amount)

    if new_balance > credit_limit:
        would_exceed_by = round2(new_balance - credit_limit)
        if allow_override:
            return TabChargeResult(valid=True, new_balance=new_balance, override_applied=True)
        return TabChargeResult(
            valid=False,
            error=f"This payment would exceed the credit limit by {format_amount(would_exceed_by)}",
            would_exceed_by=would_exceed_by,
        )

    return TabChargeResult(valid=True, new_balance=new_balance)


# =============================================================================
# SETTLEMENTS
# =============================================================================

def validate_tab_settlement(amount: float, current_balance: float) -> TabSettlementResult:
    if amount <= 0:
        return TabSettlementResult(valid=False, error="Settlement amount must be greater than 0")

    if amount > current_balance:
        return TabSettlementResult(
            valid=False,
            error=f"Settlement amount exceeds balance. Current balance: {format_amount(current_balance)}",
        )

    return TabSettlementResult(valid=True, new_balance=round2(current_balance - amount))


# =============================================================================
# USAGE
# =============================================================================

def calculate_credit_usage(balance: float, credit_limit: float) -> float:
    """
    Percentage of the credit limit in use, rounded to 1 decimal.

    A zero limit with an outstanding balance reports math.inf.
    """
    if credit_limit == 0:
        return 0.0 if balance == 0 else math.inf
    usage = Decimal(str(balance / credit_limit * 100))
    return float(usage.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def is_credit_limit_exceeded(balance: float, credit_limit: float) -> bool:
    return balance > credit_limit


def get_credit_warning_level(balance: float, credit_limit: float) -> CreditWarningLevel:
    """
    ok under 80% usage, warning from 80% to just under 100%, exceeded at
    100% or more.
    """
    if credit_limit == 0:
        return CreditWarningLevel.EXCEEDED if balance > 0 else CreditWarningLevel.OK

    usage = calculate_credit_usage(balance, credit_limit)
    if usage >= CREDIT_EXCEEDED_PERCENT:
        return CreditWarningLevel.EXCEEDED
    if usage >= CREDIT_WARNING_PERCENT:
        return CreditWarningLevel.WARNING
    return CreditWarningLevel.OK


def credit_summary(balance: float, credit_limit: float) -> dict:
    """JSON-ready snapshot of a tab's credit position."""
    usage = calculate_credit_usage(balance, credit_limit)
    return {
        "tab_balance": round2(balance),
        "credit_limit": round2(credit_limit),
        "available_credit": round2(max(credit_limit - balance, 0)),
        "usage_percent": None if math.isinf(usage) else usage,
        "warning_level": get_credit_warning_level(balance, credit_limit).value,
        "limit_exceeded": is_credit_limit_exceeded(balance, credit_limit),
    }
