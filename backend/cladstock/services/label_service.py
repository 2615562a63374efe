# Overview: Printable item labels with a QR code.

from __future__ import annotations

import base64
import io
import json
import logging
from dataclasses import asdict, dataclass
from html import escape
from typing import Iterable

import qrcode

from ..models import Item

logger = logging.getLogger(__name__)


@dataclass
class LabelData:
    id: str
    name: str
    sku: str | None
    location: str
    category: str
    qr_data_url: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def generate_qr_data_url(data: str) -> str:
    """PNG data URL for data, or "" when the QR code cannot be built."""
    try:
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=1,
        )
        qr.add_data(data)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
    except Exception as exc:
        logger.error("QR generation failed: %s", exc)
        return ""


def qr_payload(item: Item) -> str:
    # What a scanner gets back: enough to find the item again
    return json.dumps({"id": item.id, "name": item.name, "sku": item.sku})


def item_label(item: Item) -> LabelData:
    return LabelData(
        id=item.id,
        name=item.name,
        sku=item.sku,
        location=item.location or "",
        category=item.category,
        qr_data_url=generate_qr_data_url(qr_payload(item)),
    )


def bulk_labels(items: Iterable[Item]) -> list[LabelData]:
    return [item_label(item) for item in items]


def label_html(label: LabelData) -> str:
    """One 2in x 1in label. All item text is HTML-escaped."""
    sku = (
        f'<div style="font-size: 8px; color: #666; font-family: monospace;">{escape(label.sku)}</div>'
        if label.sku else ""
    )
    qr = (
        f'<img src="{escape(label.qr_data_url)}" style="width: 48px; height: 48px;" />'
        if label.qr_data_url else ""
    )
    return (
        '<div style="width: 2in; height: 1in; padding: 4px; border: 1px solid #ccc; '
        'font-family: sans-serif; display: flex; gap: 8px; box-sizing: border-box; '
        'page-break-inside: avoid;">'
        '<div style="flex: 1; min-width: 0;">'
        '<div style="font-weight: bold; font-size: 10px; overflow: hidden; '
        f'text-overflow: ellipsis; white-space: nowrap;">{escape(label.name)}</div>'
        f"{sku}"
        f'<div style="font-size: 8px; color: #666; margin-top: 2px;">{escape(label.location)}</div>'
        f'<div style="font-size: 7px; color: #999; margin-top: auto;">{escape(label.category)}</div>'
        "</div>"
        f"{qr}"
        "</div>"
    )


_PRINT_PAGE = """<!DOCTYPE html>
<html>
<head>
<title>Inventory Labels</title>
<style>
@media print {{
  body {{ margin: 0; }}
  .no-print {{ display: none; }}
}}
body {{ font-family: system-ui, sans-serif; padding: 0.5in; }}
.labels-container {{ display: flex; flex-wrap: wrap; gap: 4px; }}
.print-btn {{
  position: fixed; top: 10px; right: 10px; padding: 10px 20px;
  background: #f59e0b; color: #000; border: none; border-radius: 8px;
  cursor: pointer; font-weight: 500;
}}
</style>
</head>
<body>
<button class="print-btn no-print" onclick="window.print()">Print Labels</button>
<div class="labels-container">
{labels}
</div>
</body>
</html>
"""


def print_page_html(labels: Iterable[LabelData]) -> str:
    return _PRINT_PAGE.format(labels="".join(label_html(label) for label in labels))
