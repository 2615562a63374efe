# Overview: Flask API routes for pulls, returns, transfers and the ledger.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import NotConfiguredError, NotFoundError
from ..services import transaction_service
from ..services.transaction_service import TransactionError
from ..storage import get_storage
from ..validation import ValidationError, optional_text, require_int
from . import date_range_args, fail, json_body, unexpected

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _result(txn, item):
    return jsonify({"transaction": txn.to_dict(), "item": item.to_dict()}), 201


def _record(operation: str, func):
    try:
        txn, item = func(json_body())
        get_storage().commit()
        return _result(txn, item)
    except (ValidationError, TransactionError) as e:
        return fail(str(e), 400)
    except NotFoundError as e:
        return fail(str(e), 404)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, operation)


@transactions_bp.post("/pull")
@require_auth
@require_permission("RECORD_TRANSACTIONS")
def pull_route():
    """
    Request body:
    {
        "item_id": str,
        "quantity": int,           // > 0
        "job_reference": str (optional),
        "notes": str (optional)
    }

    Returns:
        201: {"transaction": {...}, "item": {...}}
        400: invalid quantity, or over stock when enforcement is on
        404: item not found
    """
    return _record("Pull", lambda data: transaction_service.pull_item(
        item_id=str(data.get("item_id") or ""),
        quantity=require_int(data, "quantity", minimum=1),
        actor=g.current_user,
        job_reference=optional_text(data, "job_reference"),
        notes=optional_text(data, "notes"),
    ))


@transactions_bp.post("/return")
@require_auth
@require_permission("RECORD_TRANSACTIONS")
def return_route():
    return _record("Return", lambda data: transaction_service.return_item(
        item_id=str(data.get("item_id") or ""),
        quantity=require_int(data, "quantity", minimum=1),
        actor=g.current_user,
        job_reference=optional_text(data, "job_reference"),
        notes=optional_text(data, "notes"),
    ))


@transactions_bp.post("/transfer")
@require_auth
@require_permission("RECORD_TRANSACTIONS")
def transfer_route():
    """Logs a location move; quantity on hand is unchanged."""
    return _record("Transfer", lambda data: transaction_service.transfer_item(
        item_id=str(data.get("item_id") or ""),
        quantity=require_int(data, "quantity", minimum=1),
        from_location=optional_text(data, "from_location"),
        to_location=optional_text(data, "to_location"),
        actor=g.current_user,
        notes=optional_text(data, "notes"),
    ))


@transactions_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_transactions_route():
    """Query args: start, end (ISO-8601). Without both, returns recent activity."""
    try:
        start, end = date_range_args()
    except ValueError:
        return jsonify({"error": "start/end must be ISO-8601 dates"}), 400

    if start is None and end is None:
        txns = transaction_service.recent_activity(limit=request.args.get("limit", 100, type=int))
    else:
        txns = transaction_service.transactions_by_date_range(start, end)
    return jsonify({"transactions": [t.to_dict() for t in txns]})


@transactions_bp.get("/recent")
@require_auth
@require_permission("VIEW_INVENTORY")
def recent_route():
    limit = request.args.get("limit", 20, type=int)
    txns = transaction_service.recent_activity(limit=max(1, min(limit, 500)))
    return jsonify({"transactions": [t.to_dict() for t in txns]})
