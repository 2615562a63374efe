# Overview: Flask API routes for count sessions (quarterly/daily count batches).

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import NotConfiguredError, NotFoundError
from ..models import CountSession
from ..services import count_session_service
from ..storage import get_storage
from ..validation import ModelValidationPolicy, ValidationError, optional_text, validate_payload
from . import fail, json_body, unexpected

count_sessions_bp = Blueprint("count_sessions", __name__, url_prefix="/api/count-sessions")

SESSION_PATCH_POLICY = ModelValidationPolicy(writable_fields={"name", "notes"})


@count_sessions_bp.get("")
@require_auth
@require_permission("RECORD_COUNTS")
def list_sessions_route():
    """
    Query args: status ("in_progress" or "completed"), limit (completed only).
    Without status both lists are returned.
    """
    status = request.args.get("status")
    limit = request.args.get("limit", 10, type=int)
    if status == "in_progress":
        return jsonify({"sessions": [s.to_dict() for s in count_session_service.list_active_sessions()]})
    if status == "completed":
        return jsonify({"sessions": [s.to_dict() for s in count_session_service.list_completed_sessions(limit)]})
    return jsonify({
        "active": [s.to_dict() for s in count_session_service.list_active_sessions()],
        "completed": [s.to_dict() for s in count_session_service.list_completed_sessions(limit)],
    })


@count_sessions_bp.post("")
@require_auth
@require_permission("MANAGE_COUNT_SESSIONS")
def create_session_route():
    """
    Request body: {"name": str, "type": "quarterly" | "daily" | "spot", "notes": str (optional)}
    """
    data = json_body()
    name = optional_text(data, "name")
    if not name:
        return jsonify({"error": "name is required"}), 400

    try:
        session = count_session_service.create_session(
            name=name,
            count_type=data.get("type") or "quarterly",
            actor=g.current_user,
            notes=optional_text(data, "notes"),
        )
        get_storage().commit()
        return jsonify({"session": session.to_dict()}), 201
    except ValidationError as e:
        return fail(str(e), 400)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Create count session")


@count_sessions_bp.get("/<session_id>")
@require_auth
@require_permission("RECORD_COUNTS")
def get_session_route(session_id: str):
    session = count_session_service.get_session(session_id)
    if session is None:
        return jsonify({"error": "Count session not found"}), 404
    return jsonify({"session": session.to_dict()})


@count_sessions_bp.patch("/<session_id>")
@require_auth
@require_permission("MANAGE_COUNT_SESSIONS")
def update_session_route(session_id: str):
    """Rename or re-annotate a session. Aggregates only change on completion."""
    try:
        patch = validate_payload(
            model=CountSession, payload=request.get_json(silent=True), policy=SESSION_PATCH_POLICY, partial=True
        )
        session = count_session_service.update_session(session_id, patch)
        if session is None:
            return fail("Count session not found", 404)
        get_storage().commit()
        return jsonify({"session": session.to_dict()})
    except ValidationError as e:
        return fail(str(e), 400)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Update count session")


@count_sessions_bp.post("/<session_id>/complete")
@require_auth
@require_permission("MANAGE_COUNT_SESSIONS")
def complete_session_route(session_id: str):
    try:
        session = count_session_service.complete_session(session_id)
        get_storage().commit()
        return jsonify({"session": session.to_dict()})
    except NotFoundError as e:
        return fail(str(e), 404)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Complete count session")


@count_sessions_bp.get("/<session_id>/summary")
@require_auth
@require_permission("RECORD_COUNTS")
def session_summary_route(session_id: str):
    summary = count_session_service.session_summary(session_id)
    if summary is None:
        return jsonify({"error": "Count session not found"}), 404

    session = summary["session"]
    return jsonify({
        "session": session.to_dict() if session is not None else None,
        "counts": [c.to_dict() for c in summary["counts"]],
        "uncounted_items": [i.to_dict() for i in summary["uncounted_items"]],
        "stats": summary["stats"],
    })


@count_sessions_bp.get("/<session_id>/uncounted")
@require_auth
@require_permission("RECORD_COUNTS")
def uncounted_route(session_id: str):
    if count_session_service.get_session(session_id) is None:
        return jsonify({"error": "Count session not found"}), 404
    items = count_session_service.uncounted_items(session_id)
    return jsonify({"items": [i.to_dict() for i in items]})
