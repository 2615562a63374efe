import csv
import io
import os
from decimal import Decimal

import pytest
from openpyxl import Workbook, load_workbook

from cladstock.services import item_service, spreadsheet_service
from cladstock.services.spreadsheet_service import SpreadsheetError
from cladstock.storage import get_storage


def _xlsx(rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


class TestParseExcel:
    def test_header_synonyms_and_default_category(self):
        result = spreadsheet_service.parse_excel(_xlsx([
            ["Item", "Qty", "Bin"],
            ["Mullion 3in", 12, "Rack 3"],
            ["Transom 2in", "7 pcs", "Rack 4"],
        ]))

        assert result.success
        assert result.imported == 2
        first, second = result.items
        assert first["name"] == "Mullion 3in"
        assert first["category"] == "Other"
        assert first["quantity"] == 12
        assert first["location"] == "Rack 3"
        assert second["quantity"] == 7

    def test_category_keywords_and_cost(self):
        result = spreadsheet_service.parse_excel(_xlsx([
            ["Name", "Category", "Quantity", "Unit Cost", "Reorder", "SKU"],
            ["Reynobond 4mm", "acm", 30, "$42.50", 5, "RB-4"],
            ["Meteon", "Trespa", 8, None, None, None],
            ["Clip", "fasteners", 500, "0.10", 100, "CL-1"],
            ["Thing", "misc", 1, "n/a", 0, ""],
        ]))

        categories = [row["category"] for row in result.items]
        assert categories == ["ACM", "Trespa", "Hardware", "Other"]
        assert result.items[0]["unit_cost"] == Decimal("42.50")
        assert result.items[0]["reorder_level"] == 5
        assert result.items[0]["sku"] == "RB-4"
        assert result.items[1]["unit_cost"] == Decimal("0.00")
        assert result.items[3]["sku"] is None

    def test_rows_without_name_are_skipped(self):
        result = spreadsheet_service.parse_excel(_xlsx([
            ["Name", "Qty"],
            ["Real item", 1],
            [None, 4],
            ["   ", 2],
        ]))

        assert [row["name"] for row in result.items] == ["Real item"]

    def test_missing_name_column_fails(self):
        result = spreadsheet_service.parse_excel(_xlsx([["Qty", "Bin"], [1, "A"]]))

        assert not result.success
        assert "Name" in result.errors[0]

    def test_header_only_file_is_empty(self):
        result = spreadsheet_service.parse_excel(_xlsx([["Name", "Qty"]]))

        assert not result.success
        assert result.errors == [spreadsheet_service.EMPTY_FILE_ERROR]

    def test_garbage_bytes_fail_cleanly(self):
        result = spreadsheet_service.parse_excel(b"not a workbook")

        assert not result.success
        assert result.errors


class TestParseCsv:
    def test_profile_column_and_extrusions_default(self):
        text = 'Profile,Qty,Location\nCP-101,"1,200",Rack 1\n\nCP-102,4,Rack 2\n'

        result = spreadsheet_service.parse_csv(text)

        assert result.success
        assert [row["name"] for row in result.items] == ["CP-101", "CP-102"]
        assert all(row["category"] == "Extrusions" for row in result.items)
        assert result.items[0]["quantity"] == 1200
        assert result.items[0]["location"] == "Rack 1"

    def test_item_qty_bin_headers(self):
        result = spreadsheet_service.parse_csv("Item,Qty,Bin\nMullion,12,Rack 3\n")

        assert result.success
        (row,) = result.items
        assert row["category"] == "Other"
        assert row["quantity"] == 12
        assert row["location"] == "Rack 3"

    def test_name_header_without_category_is_other(self):
        result = spreadsheet_service.parse_csv("Name,Qty\nCorner clip,40\n")

        assert result.items[0]["category"] == "Other"

    def test_negative_quantity_floors_at_zero(self):
        result = spreadsheet_service.parse_csv("Name,Qty\nBent panel,-3\n")

        assert result.items[0]["quantity"] == 0

    def test_empty_file(self):
        result = spreadsheet_service.parse_csv("Name,Qty\n")

        assert not result.success
        assert result.errors == [spreadsheet_service.EMPTY_FILE_ERROR]

    def test_missing_name_column_fails(self):
        result = spreadsheet_service.parse_csv("Qty,Location\n3,Rack 1\n")

        assert not result.success


def test_parse_upload_dispatches_on_extension():
    assert spreadsheet_service.parse_upload("stock.csv", b"Name,Qty\nA,1\n").success
    assert spreadsheet_service.parse_upload("stock.xlsx", _xlsx([["Name"], ["A"]])).success
    unsupported = spreadsheet_service.parse_upload("stock.pdf", b"%PDF")
    assert not unsupported.success
    assert "Unsupported" in unsupported.errors[0]


@pytest.mark.parametrize("value,expected", [
    (5, 5.0),
    ("12 pcs", 12.0),
    ("$1,250.75", 1250.75),
    ("", 0),
    (None, 0),
    ("abc", 0),
])
def test_parse_number(value, expected):
    assert spreadsheet_service.parse_number(value) == expected


def test_import_items_persists_rows(any_app):
    result = spreadsheet_service.parse_csv("Name,Qty\nA,1\nB,2\n")

    created = spreadsheet_service.import_items(result.items)
    get_storage().commit()

    assert created == 2
    assert sorted(i.name for i in item_service.list_items()) == ["A", "B"]


def test_export_csv_and_excel(any_app, make_item):
    make_item(name="Reynobond, 4mm", category="ACM", quantity=30, unit_cost=Decimal("42.50"), sku="RB-4")
    make_item(name="Meteon", category="Trespa", quantity=8)
    items = item_service.list_items()

    rows = list(csv.reader(io.StringIO(spreadsheet_service.export_csv(items))))
    assert rows[0] == spreadsheet_service.EXPORT_HEADERS
    assert rows[1][:3] == ["Meteon", "Trespa", "8"]
    assert rows[2][0] == "Reynobond, 4mm"
    assert rows[2][8] == "42.5"

    wb = load_workbook(io.BytesIO(spreadsheet_service.export_excel(items)))
    ws = wb["Inventory"]
    values = list(ws.values)
    assert list(values[0]) == spreadsheet_service.EXCEL_EXPORT_HEADERS
    assert values[1][0] == "Meteon"
    assert len(values) == 3


class TestDataFiles:
    def test_lists_only_spreadsheets(self, app):
        directory = app.config["DATA_DIR"]
        os.makedirs(directory)
        for name in ("b.csv", "a.xlsx", "notes.txt"):
            with open(os.path.join(directory, name), "wb") as fh:
                fh.write(b"Name\nX\n")

        assert spreadsheet_service.list_data_files() == ["a.xlsx", "b.csv"]

    def test_no_directory_means_no_files(self, app):
        assert spreadsheet_service.list_data_files() == []

    def test_parse_data_file_strips_directories(self, app):
        directory = app.config["DATA_DIR"]
        os.makedirs(directory)
        with open(os.path.join(directory, "stock.csv"), "w", encoding="utf-8") as fh:
            fh.write("Name,Qty\nA,3\n")

        result = spreadsheet_service.parse_data_file("../../stock.csv")
        assert result.success
        assert result.items[0]["quantity"] == 3

    def test_missing_data_file_raises(self, app):
        with pytest.raises(SpreadsheetError):
            spreadsheet_service.parse_data_file("nope.xlsx")
