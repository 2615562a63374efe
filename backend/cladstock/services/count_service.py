# Overview: The count engine; reconciles a physical count against system quantity.

"""
Physical count recording.

WHY: Counts are the only way system quantity gets corrected against what is
actually on the racks. Every count is kept, even when it matches, so a session
can tell counted items apart from uncounted ones.

FLOW (one unit of work):
1. Lock the item row and read its quantity (system quantity)
2. discrepancy = counted - system
3. Insert the InventoryCount
4. If discrepancy != 0, append a "count" Transaction with |discrepancy|
5. Set quantity = counted and stamp last_count_date / last_count_by

A concurrent writer that slips between 1 and 5 bumps Item.version_id, the
stale UPDATE raises StaleDataError and run_with_retry replays from step 1.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..catalog import SESSION_IN_PROGRESS, TXN_COUNT
from ..errors import NotFoundError
from ..models import InventoryCount, User
from ..storage import get_storage
from ..time_utils import utcnow
from ..validation import ValidationError, enforce_rules_count_type
from .concurrency import run_with_retry
from .item_service import new_id
from .transaction_service import build_transaction

logger = logging.getLogger(__name__)


def adjustment_note(count_type: str, discrepancy: int) -> str:
    sign = "+" if discrepancy > 0 else ""
    return f"{count_type} count adjustment: {sign}{discrepancy}"


def record_count(
    item_id: str,
    counted_quantity: int,
    count_type: str,
    actor: User,
    notes: str | None = None,
    count_session_id: str | None = None,
) -> InventoryCount:
    """
    Record a physical count and reconcile the item to it.

    Args:
        item_id: Item being counted
        counted_quantity: What is physically there (>= 0)
        count_type: quarterly, daily or spot
        actor: User doing the count
        notes: Optional free text stored on the count
        count_session_id: Session this count belongs to, if any

    Returns:
        InventoryCount: The stored count row

    Raises:
        ValidationError: negative quantity, unknown count type, or the count
            session is already completed
        NotFoundError: item or count session does not exist
    """
    if isinstance(counted_quantity, bool) or not isinstance(counted_quantity, int):
        raise ValidationError("counted_quantity must be an integer")
    if counted_quantity < 0:
        raise ValidationError("counted_quantity cannot be negative")
    enforce_rules_count_type(count_type)

    storage = get_storage()

    def _op():
        if count_session_id is not None:
            session = storage.get_count_session(count_session_id)
            if session is None:
                raise NotFoundError("CountSession", count_session_id)
            if session.status != SESSION_IN_PROGRESS:
                raise ValidationError(f"Count session {session.name!r} is already completed")

        item = storage.get_item(item_id, lock=True)
        if item is None:
            raise NotFoundError("Item", item_id)

        now = utcnow()
        system_quantity = item.quantity
        discrepancy = counted_quantity - system_quantity

        count = storage.add_count(InventoryCount(
            id=new_id(),
            item_id=item.id,
            counted_quantity=counted_quantity,
            system_quantity=system_quantity,
            discrepancy=discrepancy,
            user_id=actor.id,
            user_name=actor.name,
            count_type=count_type,
            count_session_id=count_session_id,
            notes=notes,
            created_at=now,
        ))

        if discrepancy != 0:
            storage.add_transaction(build_transaction(
                item=item,
                txn_type=TXN_COUNT,
                quantity=abs(discrepancy),
                new_quantity=counted_quantity,
                actor=actor,
                notes=adjustment_note(count_type, discrepancy),
                created_at=now,
            ))

        storage.update_item(item.id, {
            "quantity": counted_quantity,
            "last_count_date": now,
            "last_count_by": actor.name,
            "updated_at": now,
        })
        return count

    count = run_with_retry(_op)
    if count.discrepancy:
        logger.info(
            "Count on %s by %s: system %d, counted %d (%+d)",
            item_id, actor.name, count.system_quantity, count.counted_quantity, count.discrepancy,
        )
    return count


def list_item_counts(item_id: str) -> list[InventoryCount]:
    return get_storage().list_counts(item_id=item_id)


def counts_by_date_range(start: datetime | None = None, end: datetime | None = None) -> list[InventoryCount]:
    """Newest first; either bound may be omitted."""
    return get_storage().list_counts(start=start, end=end)


def session_counts(session_id: str) -> list[InventoryCount]:
    return get_storage().list_counts(session_id=session_id)
