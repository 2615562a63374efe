# Overview: StoragePort over Flask-SQLAlchemy; the backend used whenever a database is configured.

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from ..extensions import db
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
from .base import StoragePort


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id column on Item still catches lost updates there.
    """
    return query.with_for_update()


class SqlStorage(StoragePort):
    name = "sql"

    @property
    def session(self):
        return db.session

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def _update(self, model, entity_id: str, changes: dict[str, Any]):
        obj = self.session.get(model, entity_id)
        if obj is None:
            return None
        for key, value in changes.items():
            setattr(obj, key, value)
        self.session.flush()
        return obj

    def _add(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    # -- items --

    def list_items(self) -> list[Item]:
        return self.session.query(Item).order_by(Item.name.asc(), Item.created_at.asc()).all()

    def get_item(self, item_id: str, *, lock: bool = False) -> Optional[Item]:
        query = self.session.query(Item).filter_by(id=item_id)
        if lock:
            query = lock_for_update(query)
        return query.first()

    def add_item(self, item: Item) -> Item:
        return self._add(item)

    def add_items(self, items: list[Item]) -> int:
        if not items:
            return 0
        self.session.add_all(items)
        self.session.flush()
        return len(items)

    def update_item(self, item_id: str, changes: dict[str, Any]) -> Optional[Item]:
        return self._update(Item, item_id, changes)

    def delete_item(self, item_id: str) -> bool:
        item = self.session.get(Item, item_id)
        if item is None:
            return False
        # ORM cascade removes transactions/counts and nulls ai_count_logs.item_id
        self.session.delete(item)
        self.session.flush()
        return True

    def count_items(self) -> int:
        return self.session.query(Item).count()

    def list_low_stock_items(self) -> list[Item]:
        return (
            self.session.query(Item)
            .filter(Item.reorder_level > 0, Item.quantity <= Item.reorder_level)
            .order_by(Item.name.asc())
            .all()
        )

    # -- transaction ledger --

    def add_transaction(self, txn: Transaction) -> Transaction:
        return self._add(txn)

    def list_transactions(
        self,
        *,
        item_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[Transaction]:
        query = self.session.query(Transaction)
        if item_id is not None:
            query = query.filter(Transaction.item_id == item_id)
        if start is not None:
            query = query.filter(Transaction.created_at >= start)
        if end is not None:
            query = query.filter(Transaction.created_at <= end)
        query = query.order_by(Transaction.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    # -- counts --

    def add_count(self, count: InventoryCount) -> InventoryCount:
        return self._add(count)

    def list_counts(
        self,
        *,
        item_id: str | None = None,
        session_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[InventoryCount]:
        query = self.session.query(InventoryCount)
        if item_id is not None:
            query = query.filter(InventoryCount.item_id == item_id)
        if session_id is not None:
            query = query.filter(InventoryCount.count_session_id == session_id)
        if start is not None:
            query = query.filter(InventoryCount.created_at >= start)
        if end is not None:
            query = query.filter(InventoryCount.created_at <= end)
        return query.order_by(InventoryCount.created_at.desc()).all()

    # -- count sessions --

    def add_count_session(self, session: CountSession) -> CountSession:
        return self._add(session)

    def get_count_session(self, session_id: str) -> Optional[CountSession]:
        return self.session.get(CountSession, session_id)

    def update_count_session(self, session_id: str, changes: dict[str, Any]) -> Optional[CountSession]:
        return self._update(CountSession, session_id, changes)

    def list_count_sessions(self, *, status: str | None = None, limit: int | None = None) -> list[CountSession]:
        query = self.session.query(CountSession)
        if status is not None:
            query = query.filter(CountSession.status == status)
        if status == "completed":
            query = query.order_by(CountSession.completed_at.desc())
        else:
            query = query.order_by(CountSession.started_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    # -- users and login sessions --

    def list_users(self, *, active_only: bool = False) -> list[User]:
        query = self.session.query(User)
        if active_only:
            query = query.filter(User.active.is_(True))
        return query.order_by(User.name.asc()).all()

    def get_user(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def add_user(self, user: User) -> User:
        return self._add(user)

    def update_user(self, user_id: str, changes: dict[str, Any]) -> Optional[User]:
        return self._update(User, user_id, changes)

    def add_session_token(self, token: SessionToken) -> SessionToken:
        return self._add(token)

    def get_session_token(self, token_hash: str) -> Optional[SessionToken]:
        return self.session.query(SessionToken).filter_by(token_hash=token_hash).first()

    def update_session_token(self, token_id: str, changes: dict[str, Any]) -> Optional[SessionToken]:
        return self._update(SessionToken, token_id, changes)

    # -- assistant --

    def add_ai_count_log(self, log: AICountLog) -> AICountLog:
        return self._add(log)

    def list_ai_count_logs(self, *, item_id: str | None = None) -> list[AICountLog]:
        query = self.session.query(AICountLog)
        if item_id is not None:
            query = query.filter(AICountLog.item_id == item_id)
        return query.order_by(AICountLog.created_at.desc()).all()

    def add_chat_message(self, message: ChatMessage) -> ChatMessage:
        return self._add(message)

    def list_chat_messages(self, *, user_id: str | None = None) -> list[ChatMessage]:
        query = self.session.query(ChatMessage)
        if user_id is not None:
            query = query.filter(ChatMessage.user_id == user_id)
        return query.order_by(ChatMessage.created_at.asc()).all()

    def clear_chat_messages(self, user_id: str) -> int:
        deleted = self.session.query(ChatMessage).filter(ChatMessage.user_id == user_id).delete()
        self.session.flush()
        return int(deleted or 0)

    # -- admin --

    def delete_all(self) -> None:
        # Children before parents (foreign keys)
        for model in (ChatMessage, AICountLog, InventoryCount, CountSession, Transaction, SessionToken, Item, User):
            self.session.query(model).delete()
        self.session.flush()
