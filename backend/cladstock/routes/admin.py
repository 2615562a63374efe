# Overview: Flask API routes for administrative operations.

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_auth, require_permission
from ..services import admin_service
from ..storage import get_storage
from . import json_body, unexpected

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.post("/reset")
@require_auth
@require_permission("SYSTEM_ADMIN")
def reset_route():
    """
    Delete all data and recreate the default admin.

    Request body: {"confirm": true}
    The caller's session is deleted with everything else.
    """
    if json_body().get("confirm") is not True:
        return jsonify({"error": "Set confirm: true to reset all data"}), 400

    actor_name = g.current_user.name
    try:
        result = admin_service.reset_all_data()
        if not result["success"]:
            return jsonify(result), 503
        get_storage().commit()
        current_app.logger.warning("All data reset by %s", actor_name)
        return jsonify(result)
    except Exception as e:
        return unexpected(e, "Reset")
