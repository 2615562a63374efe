# Overview: Flask API routes for QR item labels.

from flask import Blueprint, Response, jsonify

from ..decorators import require_auth, require_permission
from ..services import item_service, label_service
from . import json_body

labels_bp = Blueprint("labels", __name__, url_prefix="/api/labels")


@labels_bp.get("/<item_id>")
@require_auth
@require_permission("PRINT_LABELS")
def item_label_route(item_id: str):
    item = item_service.get_item(item_id)
    if item is None:
        return jsonify({"error": "Item not found"}), 404
    label = label_service.item_label(item)
    return jsonify({"label": label.to_dict(), "html": label_service.label_html(label)})


@labels_bp.post("/print")
@require_auth
@require_permission("PRINT_LABELS")
def print_labels_route():
    """
    Request body: {"item_ids": [str, ...]}
    Returns a printable HTML page; unknown ids are skipped.
    """
    item_ids = json_body().get("item_ids")
    if not isinstance(item_ids, list) or not item_ids:
        return jsonify({"error": "item_ids must be a non-empty list"}), 400

    items = [item for item in (item_service.get_item(str(i)) for i in item_ids) if item is not None]
    if not items:
        return jsonify({"error": "No matching items"}), 404

    page = label_service.print_page_html(label_service.bulk_labels(items))
    return Response(page, mimetype="text/html")
