import base64
import json

from cladstock.services import label_service


def test_item_label_carries_qr_png(app, make_item):
    item = make_item(name="Mullion 3in", category="Extrusions", location="Rack 3", sku="MU-3")

    label = label_service.item_label(item)

    assert label.id == item.id
    assert label.location == "Rack 3"
    assert label.qr_data_url.startswith("data:image/png;base64,")
    png = base64.b64decode(label.qr_data_url.split(",", 1)[1])
    assert png[:8] == b"\x89PNG\r\n\x1a\n"


def test_qr_payload_identifies_item(app, make_item):
    item = make_item(name="Mullion 3in", sku="MU-3")

    payload = json.loads(label_service.qr_payload(item))

    assert payload == {"id": item.id, "name": "Mullion 3in", "sku": "MU-3"}


def test_label_html_escapes_item_text():
    label = label_service.LabelData(
        id="x", name="<script>alert(1)</script>", sku=None, location="Rack & Row", category="Other"
    )

    html = label_service.label_html(label)

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "Rack &amp; Row" in html
    # No QR image and no SKU line when absent
    assert "<img" not in html
    assert "monospace" not in html


def test_print_page_contains_every_label(app, make_item):
    items = [make_item(name=f"Panel {n}") for n in range(3)]

    page = label_service.print_page_html(label_service.bulk_labels(items))

    assert page.startswith("<!DOCTYPE html>")
    assert "Inventory Labels" in page
    for n in range(3):
        assert f"Panel {n}" in page
    assert page.count("<img") == 3
