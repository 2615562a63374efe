# backend/cladstock/routes/counts.py
"""
Physical count API routes.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import NotConfiguredError, NotFoundError
from ..services import count_service
from ..storage import get_storage
from ..validation import ValidationError, optional_text, require_int
from . import date_range_args, fail, json_body, unexpected

counts_bp = Blueprint("counts", __name__, url_prefix="/api/counts")


@counts_bp.route("", methods=["POST"])
@require_auth
@require_permission("RECORD_COUNTS")
def record_count():
    """
    Record a physical count and reconcile the item to it.

    Request body:
    {
        "item_id": str,
        "counted_quantity": int,   // >= 0
        "count_type": str,         // "quarterly", "daily" or "spot"
        "count_session_id": str (optional),
        "notes": str (optional)
    }

    Returns:
        201: {"count": {...}, "item": {...}}
        400: Invalid request
        404: Item or count session not found
    """
    data = json_body()

    try:
        count = count_service.record_count(
            item_id=str(data.get("item_id") or ""),
            counted_quantity=require_int(data, "counted_quantity", minimum=0),
            count_type=data.get("count_type") or "spot",
            actor=g.current_user,
            notes=optional_text(data, "notes"),
            count_session_id=optional_text(data, "count_session_id"),
        )

        get_storage().commit()

        item = get_storage().get_item(count.item_id)
        return jsonify({"count": count.to_dict(), "item": item.to_dict() if item else None}), 201

    except ValidationError as e:
        return fail(str(e), 400)
    except NotFoundError as e:
        return fail(str(e), 404)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Record count")


@counts_bp.route("", methods=["GET"])
@require_auth
@require_permission("VIEW_INVENTORY")
def list_counts():
    """Query args: start, end (ISO-8601), item_id."""
    try:
        start, end = date_range_args()
    except ValueError:
        return jsonify({"error": "start/end must be ISO-8601 dates"}), 400

    item_id = request.args.get("item_id")
    if item_id:
        counts = count_service.list_item_counts(item_id)
    else:
        counts = count_service.counts_by_date_range(start, end)
    return jsonify({"counts": [c.to_dict() for c in counts]})
