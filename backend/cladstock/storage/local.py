# Overview: StoragePort over a single JSON file, for running without a database.

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..models import (
    AICountLog,
    ChatMessage,
    CountSession,
    InventoryCount,
    Item,
    SessionToken,
    Transaction,
    User,
)
from ..time_utils import utcnow
from .base import StoragePort

logger = logging.getLogger(__name__)

"""
Local file backend

For running on one workstation without a database: one JSON document with a
list of records per entity. It is never synchronized with the SQL backend.

- The committed state lives in memory and mirrors the file. Each thread
  (one request at a time) stages its writes in its own unit of work; reads
  see the committed state with that thread's staged changes on top.
- commit() folds the staged changes into the committed state and rewrites
  the file atomically (temp file + os.replace). rollback() drops only the
  calling thread's staged changes.
- One writer at a time: the first staged write, or get_item(lock=True),
  takes the writer lock, and commit()/rollback()/close() release it. A
  locked read therefore behaves like SELECT ... FOR UPDATE.
- There is no cross-process locking; this backend targets one process.
"""

COLLECTIONS = {
    "items": Item,
    "transactions": Transaction,
    "counts": InventoryCount,
    "count_sessions": CountSession,
    "users": User,
    "session_tokens": SessionToken,
    "ai_count_logs": AICountLog,
    "chat_messages": ChatMessage,
}

# Staged deletes are recorded as this marker
DELETED = None


def _ts(record: dict, key: str) -> datetime:
    value = record.get(key)
    return datetime.fromisoformat(value) if value else datetime.min


def _newest_first(records: list[dict], key: str = "created_at") -> list[dict]:
    # Reverse first so equal timestamps come out latest-inserted first
    return sorted(reversed(records), key=lambda r: _ts(r, key), reverse=True)


def _within(record: dict, start: datetime | None, end: datetime | None) -> bool:
    created = _ts(record, "created_at")
    if start is not None and created < start:
        return False
    if end is not None and created > end:
        return False
    return True


def _apply_defaults(model, record: dict) -> dict:
    for col in model.__mapper__.columns:
        if record.get(col.key) is not None:
            continue
        if col.default is not None and getattr(col.default, "is_scalar", False):
            record[col.key] = col.default.arg
        elif col.server_default is not None and col.key in {"created_at", "updated_at", "started_at"}:
            record[col.key] = utcnow().isoformat()
    return record


class _UnitOfWork:
    def __init__(self):
        self.changes: dict[str, dict[str, dict | None]] = {name: {} for name in COLLECTIONS}
        self.cleared = False
        self.holds_writer = False

    @property
    def dirty(self) -> bool:
        return self.cleared or any(self.changes.values())


class LocalStorage(StoragePort):
    name = "local"

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._lock = threading.RLock()
        self._writer = threading.Lock()
        self._local = threading.local()
        self._state = self._load()
        logger.info("Local storage at %s (%d items)", self.path, len(self._state["items"]))

    def _load(self) -> dict[str, dict[str, dict]]:
        state: dict[str, dict[str, dict]] = {name: {} for name in COLLECTIONS}
        if not self.path.exists():
            return state
        with self.path.open(encoding="utf-8") as fh:
            raw = json.load(fh)
        for name in COLLECTIONS:
            for record in raw.get(name, []):
                state[name][record["id"]] = record
        return state

    # -- unit of work --

    @property
    def _uow(self) -> _UnitOfWork:
        uow = getattr(self._local, "uow", None)
        if uow is None:
            uow = self._local.uow = _UnitOfWork()
        return uow

    def _acquire_writer(self) -> None:
        uow = self._uow
        if not uow.holds_writer:
            self._writer.acquire()
            uow.holds_writer = True

    def _end_unit_of_work(self) -> None:
        uow = self._uow
        self._local.uow = None
        if uow.holds_writer:
            self._writer.release()

    def commit(self) -> None:
        uow = self._uow
        if not uow.dirty:
            self._end_unit_of_work()
            return
        try:
            with self._lock:
                state = {name: ({} if uow.cleared else dict(rows)) for name, rows in self._state.items()}
                for name, staged in uow.changes.items():
                    for entity_id, record in staged.items():
                        if record is DELETED:
                            state[name].pop(entity_id, None)
                        else:
                            state[name][entity_id] = record
                self._write(state)
                self._state = state
        finally:
            self._end_unit_of_work()

    def _write(self, state: dict[str, dict[str, dict]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {name: list(rows.values()) for name, rows in state.items()}
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".cladstock-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def rollback(self) -> None:
        self._end_unit_of_work()

    def close(self) -> None:
        if self._uow.dirty:
            logger.warning("Discarding uncommitted local storage changes")
        self._end_unit_of_work()

    # -- record helpers --

    def _rows(self, name: str) -> dict[str, dict]:
        """Committed rows of one entity with this thread's staged changes applied."""
        uow = self._uow
        with self._lock:
            rows = {} if uow.cleared else dict(self._state[name])
        for entity_id, record in uow.changes[name].items():
            if record is DELETED:
                rows.pop(entity_id, None)
            else:
                rows[entity_id] = record
        return rows

    def _stage(self, name: str, entity_id: str, record: dict | None) -> None:
        self._acquire_writer()
        self._uow.changes[name][entity_id] = record

    def _entity(self, name: str, record: dict):
        return COLLECTIONS[name].from_record(record)

    def _put(self, name: str, obj):
        model = COLLECTIONS[name]
        record = _apply_defaults(model, obj.to_record())
        self._stage(name, record["id"], record)
        return model.from_record(record)

    def _get(self, name: str, entity_id: str):
        uow = self._uow
        staged = uow.changes[name]
        if entity_id in staged:
            record = staged[entity_id]
        elif uow.cleared:
            record = None
        else:
            with self._lock:
                record = self._state[name].get(entity_id)
        return self._entity(name, record) if record is not None else None

    def _update(self, name: str, entity_id: str, changes: dict[str, Any]):
        self._acquire_writer()
        obj = self._get(name, entity_id)
        if obj is None:
            return None
        for key, value in changes.items():
            setattr(obj, key, value)
        return self._put(name, obj)

    def _all(self, name: str) -> list[dict]:
        return list(self._rows(name).values())

    # -- items --

    def list_items(self) -> list[Item]:
        records = sorted(self._all("items"), key=lambda r: (r.get("name") or "", _ts(r, "created_at")))
        return [self._entity("items", r) for r in records]

    def get_item(self, item_id: str, *, lock: bool = False) -> Optional[Item]:
        if lock:
            self._acquire_writer()
        return self._get("items", item_id)

    def add_item(self, item: Item) -> Item:
        return self._put("items", item)

    def add_items(self, items: list[Item]) -> int:
        for item in items:
            self._put("items", item)
        return len(items)

    def update_item(self, item_id: str, changes: dict[str, Any]) -> Optional[Item]:
        return self._update("items", item_id, changes)

    def delete_item(self, item_id: str) -> bool:
        self._acquire_writer()
        if self._get("items", item_id) is None:
            return False
        self._stage("items", item_id, DELETED)
        for name in ("transactions", "counts"):
            for key, record in self._rows(name).items():
                if record.get("item_id") == item_id:
                    self._stage(name, key, DELETED)
        for key, record in self._rows("ai_count_logs").items():
            if record.get("item_id") == item_id:
                self._stage("ai_count_logs", key, dict(record, item_id=None))
        return True

    def count_items(self) -> int:
        return len(self._rows("items"))

    def list_low_stock_items(self) -> list[Item]:
        return [i for i in self.list_items() if i.is_low_stock]

    # -- transaction ledger --

    def add_transaction(self, txn: Transaction) -> Transaction:
        return self._put("transactions", txn)

    def list_transactions(
        self,
        *,
        item_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[Transaction]:
        records = [
            r for r in self._all("transactions")
            if (item_id is None or r.get("item_id") == item_id) and _within(r, start, end)
        ]
        records = _newest_first(records)
        if limit is not None:
            records = records[:limit]
        return [self._entity("transactions", r) for r in records]

    # -- counts --

    def add_count(self, count: InventoryCount) -> InventoryCount:
        return self._put("counts", count)

    def list_counts(
        self,
        *,
        item_id: str | None = None,
        session_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[InventoryCount]:
        records = [
            r for r in self._all("counts")
            if (item_id is None or r.get("item_id") == item_id)
            and (session_id is None or r.get("count_session_id") == session_id)
            and _within(r, start, end)
        ]
        return [self._entity("counts", r) for r in _newest_first(records)]

    # -- count sessions --

    def add_count_session(self, session: CountSession) -> CountSession:
        return self._put("count_sessions", session)

    def get_count_session(self, session_id: str) -> Optional[CountSession]:
        return self._get("count_sessions", session_id)

    def update_count_session(self, session_id: str, changes: dict[str, Any]) -> Optional[CountSession]:
        return self._update("count_sessions", session_id, changes)

    def list_count_sessions(self, *, status: str | None = None, limit: int | None = None) -> list[CountSession]:
        records = [r for r in self._all("count_sessions") if status is None or r.get("status") == status]
        key = "completed_at" if status == "completed" else "started_at"
        records = _newest_first(records, key=key)
        if limit is not None:
            records = records[:limit]
        return [self._entity("count_sessions", r) for r in records]

    # -- users and login sessions --

    def list_users(self, *, active_only: bool = False) -> list[User]:
        records = [r for r in self._all("users") if not active_only or r.get("active")]
        records.sort(key=lambda r: r.get("name") or "")
        return [self._entity("users", r) for r in records]

    def get_user(self, user_id: str) -> Optional[User]:
        return self._get("users", user_id)

    def add_user(self, user: User) -> User:
        return self._put("users", user)

    def update_user(self, user_id: str, changes: dict[str, Any]) -> Optional[User]:
        return self._update("users", user_id, changes)

    def add_session_token(self, token: SessionToken) -> SessionToken:
        return self._put("session_tokens", token)

    def get_session_token(self, token_hash: str) -> Optional[SessionToken]:
        for record in self._all("session_tokens"):
            if record.get("token_hash") == token_hash:
                return self._entity("session_tokens", record)
        return None

    def update_session_token(self, token_id: str, changes: dict[str, Any]) -> Optional[SessionToken]:
        return self._update("session_tokens", token_id, changes)

    # -- assistant --

    def add_ai_count_log(self, log: AICountLog) -> AICountLog:
        return self._put("ai_count_logs", log)

    def list_ai_count_logs(self, *, item_id: str | None = None) -> list[AICountLog]:
        records = [r for r in self._all("ai_count_logs") if item_id is None or r.get("item_id") == item_id]
        return [self._entity("ai_count_logs", r) for r in _newest_first(records)]

    def add_chat_message(self, message: ChatMessage) -> ChatMessage:
        return self._put("chat_messages", message)

    def list_chat_messages(self, *, user_id: str | None = None) -> list[ChatMessage]:
        records = [r for r in self._all("chat_messages") if user_id is None or r.get("user_id") == user_id]
        records.sort(key=lambda r: _ts(r, "created_at"))
        return [self._entity("chat_messages", r) for r in records]


    def clear_chat_messages(self, user_id: str) -> int:
        doomed = [k for k, r in self._rows("chat_messages").items() if r.get("user_id") == user_id]
        for key in doomed:
            self._stage("chat_messages", key, DELETED)
        return len(doomed)

    # -- admin --

    def delete_all(self) -> None:
        self._acquire_writer()
        uow = self._uow
        uow.cleared = True
        for staged in uow.changes.values():
            staged.clear()
