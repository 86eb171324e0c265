# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .extensions import db
from .models import User

USER_HEADER = "X-User-Id"


def _is_authenticated() -> bool:
    return hasattr(g, "current_user") and g.current_user is not None


def require_auth(f):
    """
    Resolve the acting staff member.

    Sessions are handled by the upstream gateway, which forwards the
    authenticated user's id in the X-User-Id header. Sets g.current_user.

    Returns 401 if:
    - No X-User-Id header, or it is not an integer
    - Unknown user
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_id = request.headers.get(USER_HEADER, "").strip()
        if not raw_id:
            return jsonify({"error": "Authentication required"}), 401

        try:
            user_id = int(raw_id)
        except ValueError:
            return jsonify({"error": "Invalid user id"}), 401

        user = db.session.get(User, user_id)
        if not user or not user.is_active:
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific permission; must be stacked under @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not user.has_permission(permission_code):
                current_app.logger.warning(
                    "Permission denied: user=%s permission=%s path=%s",
                    user.id, permission_code, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
