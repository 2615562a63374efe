# Overview: Count sessions; groups counts under a named batch and snapshots its aggregates.

from __future__ import annotations

import logging
from typing import Any

from ..catalog import SESSION_COMPLETED, SESSION_IN_PROGRESS
from ..errors import NotFoundError
from ..models import CountSession, Item, User
from ..storage import get_storage
from ..time_utils import utcnow
from ..validation import enforce_rules_count_type
from .item_service import new_id

logger = logging.getLogger(__name__)

EMPTY_STATS = {"total": 0, "counted": 0, "discrepancies": 0, "surplus": 0, "shortage": 0}

# Fields callers may change on an existing session
UPDATABLE_FIELDS = {"name", "notes", "status", "total_items", "counted_items", "discrepancy_count", "completed_at"}


def create_session(name: str, count_type: str, actor: User, notes: str | None = None) -> CountSession:
    """total_items snapshots the catalog size at start."""
    enforce_rules_count_type(count_type)
    storage = get_storage()
    session = storage.add_count_session(CountSession(
        id=new_id(),
        name=name,
        type=count_type,
        status=SESSION_IN_PROGRESS,
        started_by=actor.id,
        started_by_name=actor.name,
        total_items=storage.count_items(),
        counted_items=0,
        discrepancy_count=0,
        notes=notes,
        started_at=utcnow(),
    ))
    logger.info("Count session %s (%s) started by %s", session.id, name, actor.name)
    return session


def get_session(session_id: str) -> CountSession | None:
    return get_storage().get_count_session(session_id)


def list_active_sessions() -> list[CountSession]:
    return get_storage().list_count_sessions(status=SESSION_IN_PROGRESS)


def list_completed_sessions(limit: int = 10) -> list[CountSession]:
    return get_storage().list_count_sessions(status=SESSION_COMPLETED, limit=limit)


def update_session(session_id: str, changes: dict[str, Any]) -> CountSession | None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Field not allowed: {', '.join(sorted(unknown))}")
    return get_storage().update_count_session(session_id, changes)


def complete_session(session_id: str) -> CountSession:
    """
    Snapshot aggregates from the session's count rows and close it.

    Safe to call again on a completed session: aggregates are recomputed from
    the rows, never added to.
    """
    storage = get_storage()
    if storage.get_count_session(session_id) is None:
        raise NotFoundError("Count session", session_id)

    counts = storage.list_counts(session_id=session_id)
    session = storage.update_count_session(session_id, {
        "counted_items": len(counts),
        "discrepancy_count": sum(1 for c in counts if c.discrepancy != 0),
        "status": SESSION_COMPLETED,
        "completed_at": utcnow(),
    })
    logger.info(
        "Count session %s completed: %d counted, %d with discrepancies",
        session_id, session.counted_items, session.discrepancy_count,
    )
    return session


def uncounted_items(session_id: str) -> list[Item]:
    """Catalog items with no count recorded in this session, by name."""
    storage = get_storage()
    counted = {c.item_id for c in storage.list_counts(session_id=session_id)}
    return [item for item in storage.list_items() if item.id not in counted]


def session_summary(session_id: str) -> dict | None:
    """
    Session with its counts, uncounted items and stats.

    Returns None when the session does not exist. Without a storage backend
    the empty shape is returned so dashboards render zeros.
    """
    storage = get_storage()
    if not storage.is_configured:
        return {"session": None, "counts": [], "uncounted_items": [], "stats": dict(EMPTY_STATS)}

    session = storage.get_count_session(session_id)
    if session is None:
        return None

    counts = storage.list_counts(session_id=session_id)
    stats = {
        "total": session.total_items,
        "counted": len(counts),
        "discrepancies": sum(1 for c in counts if c.discrepancy != 0),
        "surplus": sum(c.discrepancy for c in counts if c.discrepancy > 0),
        "shortage": sum(-c.discrepancy for c in counts if c.discrepancy < 0),
    }
    return {
        "session": session,
        "counts": counts,
        "uncounted_items": uncounted_items(session_id),
        "stats": stats,
    }
