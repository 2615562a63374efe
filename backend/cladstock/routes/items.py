# Overview: Flask API routes for the item catalog; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..catalog import location_terminology
from ..decorators import require_auth, require_permission
from ..errors import NotConfiguredError
from ..models import Item
from ..services import item_service, transaction_service
from ..storage import get_storage
from ..validation import ModelValidationPolicy, ValidationError, enforce_rules_item, validate_payload
from . import fail, unexpected

items_bp = Blueprint("items", __name__, url_prefix="/api/items")

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "category",
        "quantity",
        "location",
        "supplier",
        "reorder_level",
        "notes",
        "sku",
        "unit_cost",
    },
    required_on_create={"name"},
    extra_fields={"adjustment_note"},
)


@items_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_items_route():
    """Query args: q (search), category."""
    items = item_service.list_items(
        search=request.args.get("q") or request.args.get("search"),
        category=request.args.get("category"),
    )
    return jsonify({"items": [i.to_dict() for i in items]})


@items_bp.post("")
@require_auth
@require_permission("MANAGE_ITEMS")
def create_item_route():
    try:
        patch = validate_payload(model=Item, payload=request.get_json(silent=True), policy=ITEM_POLICY, partial=False)
        enforce_rules_item(patch)
        item = item_service.create_item(patch)
        get_storage().commit()
        return jsonify({"item": item.to_dict()}), 201
    except ValidationError as e:
        return fail(str(e), 400)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Create item")


@items_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_route():
    return jsonify({"items": [i.to_dict() for i in item_service.low_stock_items()]})


@items_bp.get("/stats")
@require_auth
@require_permission("VIEW_INVENTORY")
def stats_route():
    return jsonify(item_service.inventory_stats())


@items_bp.get("/<item_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_item_route(item_id: str):
    item = item_service.get_item(item_id)
    if item is None:
        return jsonify({"error": "Item not found"}), 404
    return jsonify({"item": item.to_dict()})


@items_bp.put("/<item_id>")
@require_auth
@require_permission("MANAGE_ITEMS")
def update_item_route(item_id: str):
    """
    Partial update. A changed quantity is booked as an adjustment
    transaction, everything else is written straight to the item.
    """
    try:
        patch = validate_payload(model=Item, payload=request.get_json(silent=True), policy=ITEM_POLICY, partial=True)
        enforce_rules_item(patch)

        if item_service.get_item(item_id) is None:
            return fail("Item not found", 404)

        note = patch.pop("adjustment_note", None)
        new_quantity = patch.pop("quantity", None)
        if new_quantity is not None:
            transaction_service.adjust_item(item_id, new_quantity, g.current_user, notes=note)

        item = item_service.update_item(item_id, patch)
        get_storage().commit()
        return jsonify({"item": item.to_dict()})
    except ValidationError as e:
        return fail(str(e), 400)
    except transaction_service.TransactionError as e:
        return fail(str(e), 400)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Update item")


@items_bp.delete("/<item_id>")
@require_auth
@require_permission("MANAGE_ITEMS")
def delete_item_route(item_id: str):
    try:
        if not item_service.delete_item(item_id):
            return fail("Item not found", 404)
        get_storage().commit()
        return jsonify({"success": True})
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Delete item")


@items_bp.get("/<item_id>/transactions")
@require_auth
@require_permission("VIEW_INVENTORY")
def item_transactions_route(item_id: str):
    txns = transaction_service.list_item_transactions(item_id)
    return jsonify({"transactions": [t.to_dict() for t in txns]})


@items_bp.get("/<item_id>/terminology")
@require_auth
@require_permission("VIEW_INVENTORY")
def item_terminology_route(item_id: str):
    """Rack/row/tent wording for the item's location field."""
    item = item_service.get_item(item_id)
    if item is None:
        return jsonify({"error": "Item not found"}), 404
    return jsonify(location_terminology(item.category))
