# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .permissions import has_permission
from .services import session_service


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets:
    - g.current_user: the authenticated User
    - g.session_token: the plaintext bearer token (for logout)

    Returns 401 if the header is missing, the token is invalid/expired/revoked,
    or the user has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if context is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a role permission. Must be stacked under @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not has_permission(user, permission_code):
                current_app.logger.info(
                    "Permission denied: %s (%s) lacks %s on %s", user.name, user.role, permission_code, request.path
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
