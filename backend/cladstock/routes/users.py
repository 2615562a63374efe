# Overview: Flask API routes for user management (admin only).

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import NotConfiguredError
from ..services import user_service
from ..storage import get_storage
from ..validation import ValidationError
from . import fail, json_body, unexpected

users_bp = Blueprint("users", __name__, url_prefix="/api/users")

UPDATABLE_FIELDS = {"name", "pin", "role", "active"}


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    active_only = request.args.get("active") in {"1", "true", "yes"}
    return jsonify({"users": [u.to_dict() for u in user_service.list_users(active_only=active_only)]})


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """Request body: {"name": str, "pin": "1234", "role": "admin" | "counter" | "user"}"""
    data = json_body()
    try:
        user = user_service.create_user(
            name=data.get("name") or "",
            pin=data.get("pin"),
            role=data.get("role") or "user",
        )
        get_storage().commit()
        return jsonify({"user": user.to_dict()}), 201
    except ValidationError as e:
        return fail(str(e), 400)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Create user")


@users_bp.put("/<user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route(user_id: str):
    data = json_body()
    unknown = set(data) - UPDATABLE_FIELDS
    if unknown:
        return jsonify({"error": f"Field not allowed: {', '.join(sorted(unknown))}"}), 400
    if "active" in data and not isinstance(data["active"], bool):
        return jsonify({"error": "active must be true or false"}), 400

    try:
        user = user_service.update_user(user_id, data)
        if user is None:
            return fail("User not found", 404)
        get_storage().commit()
        return jsonify({"user": user.to_dict()})
    except ValidationError as e:
        return fail(str(e), 400)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Update user")


@users_bp.post("/<user_id>/deactivate")
@require_auth
@require_permission("MANAGE_USERS")
def deactivate_user_route(user_id: str):
    try:
        user = user_service.deactivate_user(user_id)
        if user is None:
            return fail("User not found", 404)
        get_storage().commit()
        return jsonify({"user": user.to_dict()})
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Deactivate user")
