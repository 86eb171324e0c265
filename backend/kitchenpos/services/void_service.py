# Overview: Void eligibility checks for completed transactions; pure, no database work.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from kitchenpos.time_utils import to_utc_naive, utcnow


class VoidReason(str, Enum):
    WRONG_ITEMS = "Wrong Items"
    TEST_TRANSACTION = "Test Transaction"
    CUSTOMER_DISPUTE = "Customer Dispute"
    DUPLICATE_ENTRY = "Duplicate Entry"
    OTHER = "Other"


VALID_VOID_REASONS = [reason.value for reason in VoidReason]

VOID_WINDOW_DAYS = 7
VOID_WINDOW = timedelta(days=VOID_WINDOW_DAYS)


@dataclass(frozen=True)
class VoidCheck:
    valid: bool
    error: str | None = None

    def to_dict(self) -> dict:
        if self.valid:
            return {"valid": True}
        return {"valid": False, "error": self.error}


PASSED = VoidCheck(valid=True)


def validate_not_already_voided(is_voided: bool) -> VoidCheck:
    if is_voided:
        return VoidCheck(valid=False, error="Transaction is already voided")
    return PASSED


def validate_void_window(created_at: datetime, now: datetime | None = None) -> VoidCheck:
    """Exactly VOID_WINDOW_DAYS old is still voidable; anything older is not."""
    now = to_utc_naive(now) if now is not None else utcnow()
    age = now - to_utc_naive(created_at)
    if age > VOID_WINDOW:
        return VoidCheck(
            valid=False,
            error=f"Transaction is older than {VOID_WINDOW_DAYS} days and cannot be voided",
        )
    return PASSED


def validate_void_reason(reason: str | None, custom_reason: str | None = None) -> VoidCheck:
    if reason not in VALID_VOID_REASONS:
        return VoidCheck(valid=False, error="Invalid void reason")

    if VoidReason(reason) is VoidReason.OTHER and not (custom_reason or "").strip():
        return VoidCheck(valid=False, error="Custom reason required when selecting 'Other'")

    return PASSED


def format_void_reason(reason: str, custom_reason: str | None = None) -> str:
    """Reason as stored on the transaction: "Other: <custom>" for Other."""
    if reason == VoidReason.OTHER.value and custom_reason:
        return f"Other: {custom_reason.strip()}"
    return reason


def validate_void(
    *,
    is_voided: bool,
    created_at: datetime,
    reason: str | None,
    custom_reason: str | None = None,
    now: datetime | None = None,
) -> VoidCheck:
    """
    Run the void checks in order: not already voided, inside the window,
    valid reason. The first failure is returned.
    """
    for check in (
        lambda: validate_not_already_voided(is_voided),
        lambda: validate_void_window(created_at, now=now),
        lambda: validate_void_reason(reason, custom_reason),
    ):
        result = check()
        if not result.valid:
            return result
    return PASSED
