# Overview: Spreadsheet import (xlsx/csv) and export of the item catalog.

"""
Spreadsheet import/export

Import is two-phase: parse_* turns a file into candidate item rows without
touching storage, the caller reviews them, then import_items persists.

Header matching is case-insensitive against a fixed synonym list per field;
the first synonym found wins. A missing category column means Other, except
for CSV exports from the extrusion supplier: their name column is "Profile"
and every row is an extrusion. CSV files carry no reorder or cost columns.
"""

from __future__ import annotations

import csv
import io
import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from flask import current_app
from openpyxl import Workbook, load_workbook

from ..catalog import DEFAULT_CATEGORY, normalize_category
from ..models import Item
from ..time_utils import to_utc_z
from .item_service import bulk_create_items

logger = logging.getLogger(__name__)

DATA_FILE_EXTENSIONS = (".xlsx", ".xls", ".csv")

EMPTY_FILE_ERROR = "File is empty or has no data rows"

EXCEL_COLUMNS = {
    "name": ["name", "item", "item name", "description", "product"],
    "category": ["category", "type", "cat"],
    "quantity": ["quantity", "qty", "count", "stock", "on hand"],
    "location": ["location", "loc", "bin", "warehouse"],
    "supplier": ["supplier", "vendor", "manufacturer"],
    "reorder_level": ["reorder", "reorder level", "min", "minimum"],
    "notes": ["notes", "note", "comments", "description"],
    "sku": ["sku", "part number", "part", "code", "item number"],
    "unit_cost": ["cost", "price", "unit cost", "unit price"],
}

CSV_COLUMNS = {
    "name": ["name", "profile", "item", "description"],
    "category": ["category", "type"],
    "quantity": ["quantity", "qty", "count"],
    "location": ["location", "loc", "bin", "warehouse"],
    "supplier": ["supplier", "vendor"],
    "notes": ["notes", "note"],
    "sku": ["sku", "part", "code"],
}

# Supplier extrusion exports name their item column "Profile"
PROFILE_HEADER = "profile"
PROFILE_CATEGORY = "Extrusions"

EXPORT_HEADERS = ["Name", "Category", "Quantity", "Location", "Supplier", "Reorder Level", "Notes", "SKU", "Unit Cost"]
EXCEL_EXPORT_HEADERS = EXPORT_HEADERS + ["Last Count Date", "Last Count By"]

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


class SpreadsheetError(ValueError):
    """Raised when a data file cannot be located."""


@dataclass
class ImportResult:
    success: bool
    imported: int = 0
    errors: list[str] = field(default_factory=list)
    items: list[dict] = field(default_factory=list)

    @classmethod
    def failure(cls, message: str) -> "ImportResult":
        return cls(success=False, errors=[message])

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "imported": self.imported,
            "errors": self.errors,
            "items": [_jsonable(row) for row in self.items],
        }


def _jsonable(row: dict) -> dict:
    return {k: float(v) if isinstance(v, Decimal) else v for k, v in row.items()}


def parse_number(value: Any) -> float:
    """Lenient number parse: strips currency/units, anything unreadable is 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    match = re.match(r"-?\d*\.?\d+", _NON_NUMERIC.sub("", str(value)))
    return float(match.group(0)) if match else 0


def _count(value: Any) -> int:
    return max(0, int(parse_number(value)))


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def find_column_index(headers: list[Any], candidates: list[str]) -> int:
    lowered = [_text(h).lower() for h in headers]
    for name in candidates:
        if name in lowered:
            return lowered.index(name)
    return -1


def _resolve_columns(headers: list[Any], synonyms: dict[str, list[str]]) -> dict[str, int]:
    return {key: find_column_index(headers, names) for key, names in synonyms.items()}


def _cell(row: tuple | list, idx: int) -> Any:
    if idx < 0 or idx >= len(row):
        return None
    return row[idx]


def _rows_to_items(
    rows: list[tuple | list],
    columns: dict[str, int],
    *,
    default_category: str,
) -> ImportResult:
    items: list[dict] = []
    errors: list[str] = []

    for line_no, row in enumerate(rows[1:], start=2):
        name = _text(_cell(row, columns["name"]))
        if not name:
            continue
        try:
            item = {
                "name": name,
                "category": (
                    normalize_category(_text(_cell(row, columns["category"])))
                    if columns.get("category", -1) >= 0
                    else default_category
                ),
                "quantity": _count(_cell(row, columns["quantity"])) if columns.get("quantity", -1) >= 0 else 0,
                "location": _text(_cell(row, columns["location"])) if columns.get("location", -1) >= 0 else "",
                "supplier": _text(_cell(row, columns["supplier"])) if columns.get("supplier", -1) >= 0 else "",
                "reorder_level": (
                    _count(_cell(row, columns["reorder_level"])) if columns.get("reorder_level", -1) >= 0 else 0
                ),
                "notes": _text(_cell(row, columns["notes"])) if columns.get("notes", -1) >= 0 else "",
                "sku": (_text(_cell(row, columns["sku"])) or None) if columns.get("sku", -1) >= 0 else None,
                "unit_cost": None,
            }
            if columns.get("unit_cost", -1) >= 0:
                cost = max(0.0, parse_number(_cell(row, columns["unit_cost"])))
                item["unit_cost"] = Decimal(str(cost)).quantize(Decimal("0.01"))
            items.append(item)
        except (TypeError, ValueError, ArithmeticError) as exc:
            errors.append(f"Row {line_no}: {exc}")

    return ImportResult(success=True, imported=len(items), errors=errors, items=items)


def parse_excel(content: bytes) -> ImportResult:
    """Parse the first sheet of an .xlsx workbook."""
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        sheet = wb.worksheets[0]
        data = [row for row in sheet.values if any(cell is not None for cell in row)]
        wb.close()
    except Exception as exc:  # openpyxl raises a zoo of types for bad files
        logger.warning("Unreadable workbook: %s", exc)
        return ImportResult.failure(str(exc) or "Failed to parse file")

    if len(data) < 2:
        return ImportResult.failure(EMPTY_FILE_ERROR)

    columns = _resolve_columns(list(data[0]), EXCEL_COLUMNS)
    if columns["name"] == -1:
        return ImportResult.failure("Could not find 'Name' or 'Item' column")

    return _rows_to_items(data, columns, default_category=DEFAULT_CATEGORY)


def parse_csv(text: str) -> ImportResult:
    """Blank lines are ignored; quoted values may contain commas."""
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return ImportResult.failure(EMPTY_FILE_ERROR)

    try:
        rows = [[cell.strip() for cell in row] for row in csv.reader(lines)]
    except csv.Error as exc:
        return ImportResult.failure(str(exc))

    columns = _resolve_columns(rows[0], CSV_COLUMNS)
    if columns["name"] == -1:
        return ImportResult.failure("Could not find 'Name' or 'Profile' column")

    default_category = DEFAULT_CATEGORY
    if _text(rows[0][columns["name"]]).lower() == PROFILE_HEADER:
        default_category = PROFILE_CATEGORY
    return _rows_to_items(rows, columns, default_category=default_category)


def parse_upload(filename: str, content: bytes) -> ImportResult:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext == ".csv":
        return parse_csv(content.decode("utf-8-sig", errors="replace"))
    if ext in (".xlsx", ".xlsm"):
        return parse_excel(content)
    return ImportResult.failure(f"Unsupported file type: {ext or 'unknown'}")


def import_items(rows: list[dict]) -> int:
    """Persist reviewed import rows as new items. Returns the number created."""
    created = bulk_create_items(rows)
    logger.info("Imported %d items", created)
    return created


# -- server-side data files --

def data_dir() -> str:
    # Relative to the working directory the server was started from
    return os.path.abspath(current_app.config.get("DATA_DIR") or "data")


def list_data_files() -> list[str]:
    directory = data_dir()
    if not os.path.isdir(directory):
        return []
    return sorted(
        name for name in os.listdir(directory)
        if os.path.splitext(name)[1].lower() in DATA_FILE_EXTENSIONS
    )


def parse_data_file(filename: str) -> ImportResult:
    """
    Parse a file from DATA_DIR. Only the basename of filename is used.

    Raises:
        SpreadsheetError: file not found
    """
    safe_name = os.path.basename(filename or "")
    path = os.path.join(data_dir(), safe_name)
    if not safe_name or not os.path.isfile(path):
        raise SpreadsheetError("File not found")
    with open(path, "rb") as fh:
        content = fh.read()
    if safe_name.lower().endswith(".csv"):
        return parse_csv(content.decode("utf-8-sig", errors="replace"))
    return parse_excel(content)


# -- export --

def _cost(item: Item):
    return float(item.unit_cost) if item.unit_cost else ""


def export_csv(items: Iterable[Item]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for item in items:
        writer.writerow([
            item.name,
            item.category,
            item.quantity,
            item.location or "",
            item.supplier or "",
            item.reorder_level,
            item.notes or "",
            item.sku or "",
            _cost(item),
        ])
    return buf.getvalue()


def export_excel(items: Iterable[Item]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Inventory"
    ws.append(EXCEL_EXPORT_HEADERS)
    for item in items:
        ws.append([
            item.name,
            item.category,
            item.quantity,
            item.location or "",
            item.supplier or "",
            item.reorder_level,
            item.notes or "",
            item.sku or "",
            _cost(item),
            to_utc_z(item.last_count_date) or "",
            item.last_count_by or "",
        ])
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
