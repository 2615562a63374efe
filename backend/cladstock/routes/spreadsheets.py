# Overview: Flask API routes for spreadsheet import/export and server-side data files.

from flask import Blueprint, Response, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import NotConfiguredError
from ..models import Item
from ..services import item_service, spreadsheet_service
from ..services.spreadsheet_service import SpreadsheetError
from ..storage import get_storage
from ..validation import ModelValidationPolicy, ValidationError, enforce_rules_item, validate_payload
from . import fail, json_body, unexpected

spreadsheets_bp = Blueprint("spreadsheets", __name__, url_prefix="/api")

IMPORT_ROW_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "quantity", "location", "supplier", "reorder_level", "notes", "sku", "unit_cost"},
    required_on_create={"name"},
)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@spreadsheets_bp.post("/imports/upload")
@require_auth
@require_permission("IMPORT_EXPORT")
def upload_route():
    """
    Parse an uploaded .xlsx or .csv (multipart field "file") into candidate rows.
    Nothing is persisted; POST the reviewed rows to /api/imports/commit.
    """
    file = request.files.get("file")
    if file is None or not file.filename:
        return jsonify({"error": "No file uploaded"}), 400

    result = spreadsheet_service.parse_upload(file.filename, file.read())
    return jsonify(result.to_dict()), 200 if result.success else 400


@spreadsheets_bp.post("/imports/commit")
@require_auth
@require_permission("IMPORT_EXPORT")
def commit_import_route():
    """Request body: {"items": [{name, category, quantity, ...}, ...]}"""
    rows = json_body().get("items")
    if not isinstance(rows, list) or not rows:
        return jsonify({"error": "items must be a non-empty list"}), 400

    try:
        cleaned = []
        for idx, row in enumerate(rows, start=1):
            try:
                patch = validate_payload(model=Item, payload=row, policy=IMPORT_ROW_POLICY, partial=False)
                enforce_rules_item(patch)
            except ValidationError as e:
                raise ValidationError(f"Row {idx}: {e}") from e
            cleaned.append(patch)

        created = spreadsheet_service.import_items(cleaned)
        get_storage().commit()
        return jsonify({"success": True, "imported": created}), 201
    except ValidationError as e:
        return fail(str(e), 400)
    except NotConfiguredError as e:
        return fail(str(e), 503)
    except Exception as e:
        return unexpected(e, "Import items")


@spreadsheets_bp.get("/exports/items.csv")
@require_auth
@require_permission("IMPORT_EXPORT")
def export_csv_route():
    body = spreadsheet_service.export_csv(item_service.list_items())
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=inventory.csv"},
    )


@spreadsheets_bp.get("/exports/items.xlsx")
@require_auth
@require_permission("IMPORT_EXPORT")
def export_xlsx_route():
    body = spreadsheet_service.export_excel(item_service.list_items())
    return Response(
        body,
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": "attachment; filename=inventory.xlsx"},
    )


@spreadsheets_bp.get("/data-files")
@require_auth
@require_permission("IMPORT_EXPORT")
def list_data_files_route():
    return jsonify({"files": spreadsheet_service.list_data_files()})


@spreadsheets_bp.post("/data-files")
@require_auth
@require_permission("IMPORT_EXPORT")
def parse_data_file_route():
    """Request body: {"filename": str}. Returns the parse result, nothing is persisted."""
    filename = json_body().get("filename")
    if not filename or not isinstance(filename, str):
        return jsonify({"error": "Filename is required"}), 400

    try:
        result = spreadsheet_service.parse_data_file(filename)
    except SpreadsheetError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(result.to_dict())
