from __future__ import annotations

import math
from typing import Any

from kitchenpos.time_utils import parse_iso_datetime

# Maximum monetary amount accepted from clients: 9,999,999.99
MAX_AMOUNT = 9_999_999.99


class ValidationError(ValueError):
    """400-level input problem."""


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def parse_amount(value: Any, field: str, *, required: bool = True) -> float | None:
    """
    Coerce a client-supplied monetary amount to float.

    Accepts numbers and numeric strings; rejects booleans, NaN/inf, and
    anything beyond MAX_AMOUNT. Sign is left to the domain validators.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, (int, float)):
        amount = float(value)
    elif isinstance(value, str):
        try:
            amount = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not math.isfinite(amount):
        raise ValidationError(f"{field} must be a finite number")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT:,.2f}")
    return amount


def parse_optional_int(value: Any, field: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer")


def parse_bool(value: Any, field: str, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false", "1", "0"):
        return value.lower() in ("true", "1")
    raise ValidationError(f"{field} must be a boolean")


def parse_datetime_arg(value: str | None, field: str):
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
