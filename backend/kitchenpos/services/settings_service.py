# Overview: Process-wide store settings, loaded once at startup with explicit reload and upsert.

"""
Store Settings

WHY: The store has exactly one settings record (name, receipt header/footer,
tax). Rather than a database row with a fixed id, settings live in a JSON
file next to the instance and are held in memory for the life of the
process.

LIFECYCLE:
- load_settings(app): called from create_app; reads the file or defaults
- get_settings(): current in-memory snapshot
- reload_settings(): re-read the file (e.g. after an external edit)
- update_settings(patch): validate, merge, write the file, swap the snapshot
"""

from __future__ import annotations

import json
import os
import threading
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from flask import Flask


class SettingsError(ValueError):
    """Invalid settings payload or unreadable settings file."""


@dataclass(frozen=True)
class StoreSettings:
    store_name: str = "Kitchen POS"
    currency_symbol: str = "$"
    tax_percentage: float = 0.0
    charge_tax: bool = False
    address_line1: str = ""
    address_line2: str = ""
    phone: str = ""
    tax_number: str = ""
    receipt_footer: str = "Thank you!"

    def to_dict(self) -> dict:
        return asdict(self)


_FIELD_TYPES = {f.name: f.type for f in fields(StoreSettings)}
MAX_TEXT_LENGTH = 255

_lock = threading.Lock()
_settings: StoreSettings = StoreSettings()
_settings_path: str | None = None


# =============================================================================
# VALIDATION
# =============================================================================

def _coerce(key: str, value: Any) -> Any:
    field_type = _FIELD_TYPES[key]

    if field_type == "bool":
        if not isinstance(value, bool):
            raise SettingsError(f"{key} must be a boolean")
        return value

    if field_type == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SettingsError(f"{key} must be a number")
        if key == "tax_percentage" and not 0 <= value <= 100:
            raise SettingsError("tax_percentage must be between 0 and 100")
        return float(value)

    if value is None:
        return ""
    if not isinstance(value, str):
        raise SettingsError(f"{key} must be a string")
    value = value.strip()
    if len(value) > MAX_TEXT_LENGTH:
        raise SettingsError(f"{key} exceeds max length {MAX_TEXT_LENGTH}")
    if key in ("store_name", "currency_symbol") and not value:
        raise SettingsError(f"{key} cannot be blank")
    return value


def validate_settings_patch(patch: Any) -> dict:
    if not isinstance(patch, dict):
        raise SettingsError("Invalid JSON payload")

    cleaned = {}
    for key, value in patch.items():
        if key not in _FIELD_TYPES:
            raise SettingsError(f"Unknown setting: {key}")
        cleaned[key] = _coerce(key, value)
    return cleaned


# =============================================================================
# FILE I/O
# =============================================================================

def _read_file(path: str) -> StoreSettings:
    if not os.path.exists(path):
        return StoreSettings()
    try:
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise SettingsError(f"Could not read settings file {path}: {exc}") from exc

    # Ignore keys written by older versions
    known = {k: v for k, v in raw.items() if k in _FIELD_TYPES} if isinstance(raw, dict) else {}
    return replace(StoreSettings(), **validate_settings_patch(known))


def _write_file(path: str, settings: StoreSettings) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as fh:
        json.dump(settings.to_dict(), fh, indent=2, sort_keys=True)
    os.replace(tmp_path, path)


# =============================================================================
# PUBLIC API
# =============================================================================

def resolve_settings_path(app: Flask) -> str:
    path = app.config.get("SETTINGS_PATH") or "settings.json"
    if os.path.isabs(path):
        return path
    return os.path.join(app.instance_path, path)


def load_settings(app: Flask) -> StoreSettings:
    global _settings, _settings_path
    path = resolve_settings_path(app)
    loaded = _read_file(path)
    with _lock:
        _settings_path = path
        _settings = loaded
    app.logger.info("Loaded store settings from %s", path)
    return loaded


def get_settings() -> StoreSettings:
    return _settings


def reload_settings() -> StoreSettings:
    global _settings
    if _settings_path is None:
        raise SettingsError("Settings have not been loaded")
    loaded = _read_file(_settings_path)
    with _lock:
        _settings = loaded
    return loaded


def update_settings(patch: Any) -> StoreSettings:
    """Validate and merge `patch` into the current settings, then persist."""
    global _settings
    if _settings_path is None:
        raise SettingsError("Settings have not been loaded")

    cleaned = validate_settings_patch(patch)
    with _lock:
        updated = replace(_settings, **cleaned)
        _write_file(_settings_path, updated)
        _settings = updated
    return updated


def tax_rate() -> float:
    """Fractional tax rate to apply to a sale (0 when tax is switched off)."""
    settings = get_settings()
    if not settings.charge_tax:
        return 0.0
    return settings.tax_percentage / 100
