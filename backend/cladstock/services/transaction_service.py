# Overview: Pull, return and transfer recording against the append-only transaction ledger.

"""
Ledger invariants (authoritative)

- Item.quantity is the authoritative on-hand figure; the ledger explains
  every change to it.
- Transaction rows are insert-only. quantity is a magnitude (>= 0); the
  direction comes from type:
    pull      new = max(0, previous - quantity)
    return    new = previous + quantity
    transfer  new = previous (location move only)
    count /
    adjustment new = previous +/- quantity
- Each recording operation is one unit of work: read the item (row-locked on
  SQL), append the transaction, update the item. Routes commit.
"""

from __future__ import annotations

import logging
from datetime import datetime

from flask import current_app

from ..catalog import TXN_ADJUSTMENT, TXN_COUNT, TXN_PULL, TXN_RETURN, TXN_TRANSFER
from ..errors import NotFoundError
from ..models import Item, Transaction, User
from ..storage import get_storage
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .item_service import new_id

logger = logging.getLogger(__name__)


class TransactionError(ValueError):
    """Raised when a pull/return/transfer request is invalid."""


def expected_new_quantity(txn_type: str, previous: int, quantity: int) -> int | tuple[int, int]:
    """
    Quantity after applying a ledger entry of txn_type.

    For count/adjustment entries the direction is not recorded, so both
    candidates (previous - quantity, previous + quantity) are returned.
    """
    if txn_type == TXN_PULL:
        return max(0, previous - quantity)
    if txn_type == TXN_RETURN:
        return previous + quantity
    if txn_type == TXN_TRANSFER:
        return previous
    if txn_type in (TXN_COUNT, TXN_ADJUSTMENT):
        return (previous - quantity, previous + quantity)
    raise TransactionError(f"Unknown transaction type: {txn_type}")


def is_consistent(txn: Transaction) -> bool:
    expected = expected_new_quantity(txn.type, txn.previous_quantity, txn.quantity)
    if isinstance(expected, tuple):
        return txn.new_quantity in expected
    return txn.new_quantity == expected


def _require_positive(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise TransactionError("quantity must be a positive integer")


def _load_item(item_id: str) -> Item:
    item = get_storage().get_item(item_id, lock=True)
    if item is None:
        raise NotFoundError("Item", item_id)
    return item


def build_transaction(
    *,
    item: Item,
    txn_type: str,
    quantity: int,
    new_quantity: int,
    actor: User,
    job_reference: str | None = None,
    notes: str | None = None,
    from_location: str | None = None,
    to_location: str | None = None,
    created_at: datetime | None = None,
) -> Transaction:
    return Transaction(
        id=new_id(),
        item_id=item.id,
        type=txn_type,
        quantity=quantity,
        previous_quantity=item.quantity,
        new_quantity=new_quantity,
        user_id=actor.id,
        user_name=actor.name,
        job_reference=job_reference,
        notes=notes,
        from_location=from_location,
        to_location=to_location,
        created_at=created_at or utcnow(),
    )


def _apply(item_id: str, txn_type: str, quantity: int, actor: User, **extra) -> tuple[Transaction, Item]:
    storage = get_storage()

    def _op():
        item = _load_item(item_id)
        if txn_type == TXN_PULL and quantity > item.quantity and current_app.config.get("ENFORCE_STOCK_ON_PULL"):
            raise TransactionError(
                f"Cannot pull {quantity}: only {item.quantity} on hand for {item.name}"
            )
        new_quantity = expected_new_quantity(txn_type, item.quantity, quantity)

        txn = storage.add_transaction(
            build_transaction(item=item, txn_type=txn_type, quantity=quantity, new_quantity=new_quantity, actor=actor, **extra)
        )
        if new_quantity != item.quantity:
            item = storage.update_item(item.id, {"quantity": new_quantity, "updated_at": utcnow()})
        return txn, item

    txn, item = run_with_retry(_op)
    logger.info(
        "%s %s x%d by %s (%d -> %d)",
        txn_type, item_id, quantity, actor.name, txn.previous_quantity, txn.new_quantity,
    )
    return txn, item


def pull_item(
    item_id: str,
    quantity: int,
    actor: User,
    job_reference: str | None = None,
    notes: str | None = None,
) -> tuple[Transaction, Item]:
    """
    Remove stock for a job.

    Stock never goes negative: by default an oversized pull clamps the item
    at 0 (the UI is expected to stop it first). With ENFORCE_STOCK_ON_PULL
    the pull is rejected instead.

    Raises:
        NotFoundError: item does not exist
        TransactionError: quantity invalid, or over stock when enforced
    """
    _require_positive(quantity)
    return _apply(item_id, TXN_PULL, quantity, actor, job_reference=job_reference, notes=notes)


def return_item(
    item_id: str,
    quantity: int,
    actor: User,
    job_reference: str | None = None,
    notes: str | None = None,
) -> tuple[Transaction, Item]:
    """Put stock back (unused material). No upper bound."""
    _require_positive(quantity)
    return _apply(item_id, TXN_RETURN, quantity, actor, job_reference=job_reference, notes=notes)


def transfer_item(
    item_id: str,
    quantity: int,
    from_location: str,
    to_location: str,
    actor: User,
    notes: str | None = None,
) -> tuple[Transaction, Item]:
    """
    Record a location move. Quantity is left alone; callers that also move
    stock out pair this with a pull.
    """
    _require_positive(quantity)
    if not from_location or not to_location:
        raise TransactionError("from_location and to_location are required")
    return _apply(
        item_id,
        TXN_TRANSFER,
        quantity,
        actor,
        from_location=from_location,
        to_location=to_location,
        notes=notes,
    )


def adjust_item(item_id: str, new_quantity: int, actor: User, notes: str | None = None) -> tuple[Transaction | None, Item]:
    """
    Set quantity directly (item edit form). Writes an adjustment entry when
    the quantity actually changes; returns (None, item) otherwise.
    """
    if isinstance(new_quantity, bool) or not isinstance(new_quantity, int) or new_quantity < 0:
        raise TransactionError("quantity must be a non-negative integer")
    storage = get_storage()

    def _op():
        item = _load_item(item_id)
        if item.quantity == new_quantity:
            return None, item
        txn = storage.add_transaction(build_transaction(
            item=item,
            txn_type=TXN_ADJUSTMENT,
            quantity=abs(new_quantity - item.quantity),
            new_quantity=new_quantity,
            actor=actor,
            notes=notes or "Manual adjustment",
        ))
        item = storage.update_item(item.id, {"quantity": new_quantity, "updated_at": utcnow()})
        return txn, item

    return run_with_retry(_op)


def list_item_transactions(item_id: str) -> list[Transaction]:
    """Ledger history of one item, newest first."""
    return get_storage().list_transactions(item_id=item_id)


def transactions_by_date_range(start: datetime, end: datetime) -> list[Transaction]:
    return get_storage().list_transactions(start=start, end=end)


def recent_activity(limit: int = 20) -> list[Transaction]:
    return get_storage().list_transactions(limit=limit)
