# Overview: Flask API routes for PIN login and logout.

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_auth
from ..errors import NotConfiguredError
from ..permissions import get_role_permissions
from ..services import session_service, user_service
from . import json_body

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _user_payload(user) -> dict:
    payload = user.to_dict()
    payload["permissions"] = sorted(get_role_permissions(user.role))
    return payload


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by PIN and create a session token.

    Request body: {"pin": "1234"}

    Returns:
        200: {"user": {...}, "token": "..."}
        400: PIN missing
        401: no active user with that PIN
        503: storage not configured
    """
    data = json_body()
    pin = data.get("pin")
    if pin is None or str(pin).strip() == "":
        return jsonify({"error": "pin required"}), 400

    user = user_service.validate_user_pin(pin)
    if user is None:
        current_app.logger.info("Failed PIN login")
        return jsonify({"error": "Invalid PIN"}), 401

    try:
        _, token = session_service.create_session(user)
    except NotConfiguredError as e:
        return jsonify({"error": str(e)}), 503

    current_app.logger.info("User %s logged in", user.name)
    return jsonify({"user": _user_payload(user), "token": token})


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    return jsonify({"success": True})


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": _user_payload(g.current_user)})
