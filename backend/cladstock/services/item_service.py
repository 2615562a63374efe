# Overview: Service-layer operations for the item catalog; search, CRUD, low stock and stats.

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

from ..catalog import CATEGORIES, DEFAULT_CATEGORY
from ..models import Item
from ..storage import get_storage
from ..time_utils import utcnow


def new_id() -> str:
    return uuid.uuid4().hex


def build_item(fields: dict[str, Any]) -> Item:
    """
    Materialize a new Item with every column set explicitly.

    Both backends persist exactly what they are given, so defaults are
    applied here rather than left to the database.
    """
    now = utcnow()
    return Item(
        id=fields.get("id") or new_id(),
        name=fields["name"],
        category=fields.get("category") or DEFAULT_CATEGORY,
        quantity=int(fields.get("quantity") or 0),
        location=fields.get("location") or "",
        supplier=fields.get("supplier") or "",
        reorder_level=int(fields.get("reorder_level") or 0),
        notes=fields.get("notes") or "",
        sku=fields.get("sku") or None,
        unit_cost=fields.get("unit_cost"),
        last_count_date=fields.get("last_count_date"),
        last_count_by=fields.get("last_count_by"),
        version_id=1,
        created_at=fields.get("created_at") or now,
        updated_at=now,
    )


def _matches(item: Item, needle: str) -> bool:
    haystacks = (item.name, item.sku, item.location, item.supplier)
    return any(h and needle in h.lower() for h in haystacks)


def list_items(search: str | None = None, category: str | None = None) -> list[Item]:
    """
    All items ordered by name.

    search: case-insensitive substring over name, SKU, location and supplier.
    category: exact category match.
    """
    items = get_storage().list_items()
    if category:
        items = [i for i in items if i.category == category]
    if search and search.strip():
        needle = search.strip().lower()
        items = [i for i in items if _matches(i, needle)]
    return items


def get_item(item_id: str) -> Item | None:
    return get_storage().get_item(item_id)


def create_item(fields: dict[str, Any]) -> Item:
    return get_storage().add_item(build_item(fields))


def update_item(item_id: str, changes: dict[str, Any]) -> Item | None:
    """Returns None when the item does not exist."""
    changes = dict(changes)
    changes["updated_at"] = utcnow()
    return get_storage().update_item(item_id, changes)


def delete_item(item_id: str) -> bool:
    """Deletes the item with its transactions and counts. False when absent."""
    return get_storage().delete_item(item_id)


def bulk_create_items(rows: list[dict[str, Any]]) -> int:
    if not rows:
        return 0
    return get_storage().add_items([build_item(r) for r in rows])


def low_stock_items() -> list[Item]:
    """Items at or below a non-zero reorder level."""
    return get_storage().list_low_stock_items()


def inventory_stats() -> dict:
    items = get_storage().list_items()

    total_value = Decimal("0")
    category_counts: dict[str, int] = {}
    for item in items:
        if item.unit_cost is not None:
            total_value += Decimal(item.quantity) * Decimal(item.unit_cost)
        category_counts[item.category] = category_counts.get(item.category, 0) + 1

    return {
        "total_items": len(items),
        "total_value": float(total_value),
        "low_stock_count": sum(1 for i in items if i.is_low_stock),
        "category_counts": category_counts,
        "categories": list(CATEGORIES),
    }
