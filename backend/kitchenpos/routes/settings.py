from __future__ import annotations

from flask import Blueprint, jsonify, request, current_app, g

from ..decorators import require_auth, require_permission
from ..services import settings_service
from ..services.settings_service import SettingsError


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    # Any signed-in user can read settings; receipts and checkout need them.
    return jsonify(settings_service.get_settings().to_dict()), 200


@settings_bp.put("")
@require_auth
@require_permission("MANAGE_SETTINGS")
def update_settings_route():
    try:
        updated = settings_service.update_settings(request.get_json(silent=True))
        current_app.logger.info(
            "Store settings updated by user %s: %s",
            g.current_user.id, sorted((request.get_json(silent=True) or {}).keys()),
        )
        return jsonify(updated.to_dict()), 200
    except SettingsError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.post("/reload")
@require_auth
@require_permission("MANAGE_SETTINGS")
def reload_settings_route():
    try:
        return jsonify(settings_service.reload_settings().to_dict()), 200
    except SettingsError as e:
        return jsonify({"error": str(e)}), 400
