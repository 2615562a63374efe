from __future__ import annotations

from ..extensions import db
from ..catalog import DEFAULT_CATEGORY, SESSION_IN_PROGRESS
from ..time_utils import to_utc_z
from .base import RecordMixin


class Item(RecordMixin, db.Model):
    """
    A stocked material (panel, extrusion, tool, fastener, ...).

    quantity is the authoritative on-hand figure. It is mutated only through
    pull/return (transaction_service) and physical counts (count_service);
    every such mutation leaves a Transaction row, except counts that match.

    version_id backs optimistic locking: a stale UPDATE raises StaleDataError
    instead of silently overwriting a concurrent count.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_name", "name"),
        db.Index("ix_items_category", "category"),
        db.CheckConstraint("quantity >= 0", name="ck_items_quantity_nonnegative"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False, default=DEFAULT_CATEGORY)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(255), nullable=False, default="")
    supplier = db.Column(db.String(255), nullable=False, default="")
    reorder_level = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=False, default="")
    sku = db.Column(db.String(64), nullable=True)
    unit_cost = db.Column(db.Numeric(10, 2), nullable=True)

    last_count_date = db.Column(db.DateTime(timezone=True), nullable=True)
    last_count_by = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transactions = db.relationship(
        "Transaction", backref="item", lazy=True, cascade="all, delete-orphan"
    )
    counts = db.relationship(
        "InventoryCount", backref="item", lazy=True, cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return (self.reorder_level or 0) > 0 and (self.quantity or 0) <= self.reorder_level

    def __repr__(self) -> str:
        return f"<Item id={self.id!r} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "location": self.location,
            "supplier": self.supplier,
            "reorder_level": self.reorder_level,
            "notes": self.notes,
            "sku": self.sku,
            "unit_cost": float(self.unit_cost) if self.unit_cost is not None else None,
            "last_count_date": to_utc_z(self.last_count_date),
            "last_count_by": self.last_count_by,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Transaction(RecordMixin, db.Model):
    """
    Append-only ledger entry. Never updated after insert.

    quantity is the magnitude of the change; direction comes from type.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_item_created", "item_id", "created_at"),
        db.Index("ix_transactions_created", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    item_id = db.Column(db.String(64), db.ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    previous_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    user_name = db.Column(db.String(255), nullable=False)

    job_reference = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    from_location = db.Column(db.String(255), nullable=True)
    to_location = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "type": self.type,
            "quantity": self.quantity,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "job_reference": self.job_reference,
            "notes": self.notes,
            "from_location": self.from_location,
            "to_location": self.to_location,
            "created_at": to_utc_z(self.created_at),
        }


class InventoryCount(RecordMixin, db.Model):
    """One physical count observation. Immutable once written."""
    __tablename__ = "counts"
    __table_args__ = (
        db.Index("ix_counts_session", "count_session_id"),
        db.Index("ix_counts_item_created", "item_id", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    item_id = db.Column(db.String(64), db.ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    counted_quantity = db.Column(db.Integer, nullable=False)
    system_quantity = db.Column(db.Integer, nullable=False)
    discrepancy = db.Column(db.Integer, nullable=False)

    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    user_name = db.Column(db.String(255), nullable=False)

    count_type = db.Column(db.String(16), nullable=False)
    count_session_id = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "counted_quantity": self.counted_quantity,
            "system_quantity": self.system_quantity,
            "discrepancy": self.discrepancy,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "count_type": self.count_type,
            "count_session_id": self.count_session_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class CountSession(RecordMixin, db.Model):
    """
    A named batch of counts (e.g. the Q3 quarterly count).

    LIFECYCLE: in_progress -> completed. counted_items and discrepancy_count
    are recomputed from the count rows each time the session is completed.
    """
    __tablename__ = "count_sessions"
    __table_args__ = (
        db.Index("ix_count_sessions_status", "status"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=SESSION_IN_PROGRESS)

    started_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    started_by_name = db.Column(db.String(255), nullable=False)

    total_items = db.Column(db.Integer, nullable=False, default=0)
    counted_items = db.Column(db.Integer, nullable=False, default=0)
    discrepancy_count = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    started_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "started_by": self.started_by,
            "started_by_name": self.started_by_name,
            "total_items": self.total_items,
            "counted_items": self.counted_items,
            "discrepancy_count": self.discrepancy_count,
            "notes": self.notes,
            "started_at": to_utc_z(self.started_at),
            "completed_at": to_utc_z(self.completed_at),
        }
