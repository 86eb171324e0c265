# Overview: Currency rounding and formatting shared by the validators and services.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")


def round2(value: Any) -> float:
    """
    Round a monetary amount half-up to 2 decimal places.

    Goes through the decimal string form, so 0.1 + 0.2 lands on 0.3
    rather than 0.30000000000000004.
    """
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def format_amount(value: Any) -> str:
    """Fixed 2-decimal rendering used in validation messages."""
    return f"{Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP):.2f}"


def format_currency(value: Any, symbol: str = "$") -> str:
    """Display form with thousands separators, e.g. "$1,234.50"."""
    if value is None:
        return f"{symbol}0.00"
    try:
        amount = Decimal(str(value))
    except ArithmeticError:
        return f"{symbol}0.00"
    if not amount.is_finite():
        return f"{symbol}0.00"
    return f"{symbol}{amount.quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"


def to_number(value: Any) -> float | None:
    """Convert ORM Decimal (or str/int) values to float for the pure calculators."""
    if value is None:
        return None
    return float(value)
