# Overview: The storage port every service talks to; one implementation is injected per app.

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
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

"""
Storage port contract (authoritative)

- Writes are staged until commit(); rollback() discards everything staged
  since the last commit. Routes own commit/rollback, services only stage.
- Entities returned by reads are read-only. Change rows through the
  update_* methods, which return the updated entity or None when the id
  has no row.
- Deleting an item deletes its transactions and counts and detaches its AI
  count logs (item_id -> None).
"""


class StoragePort(ABC):
    name: str = "abstract"
    is_configured: bool = True

    # -- unit of work --

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...

    def close(self) -> None:
        """End of request: drop anything neither committed nor rolled back."""

    # -- items --

    @abstractmethod
    def list_items(self) -> list[Item]:
        """All items ordered by name."""

    @abstractmethod
    def get_item(self, item_id: str, *, lock: bool = False) -> Optional[Item]:
        """lock=True asks the backend to hold the row until commit/rollback."""

    @abstractmethod
    def add_item(self, item: Item) -> Item: ...

    @abstractmethod
    def add_items(self, items: list[Item]) -> int: ...

    @abstractmethod
    def update_item(self, item_id: str, changes: dict[str, Any]) -> Optional[Item]: ...

    @abstractmethod
    def delete_item(self, item_id: str) -> bool: ...

    @abstractmethod
    def count_items(self) -> int: ...

    @abstractmethod
    def list_low_stock_items(self) -> list[Item]:
        """Items with reorder_level > 0 and quantity <= reorder_level, by name."""

    # -- transaction ledger --

    @abstractmethod
    def add_transaction(self, txn: Transaction) -> Transaction: ...

    @abstractmethod
    def list_transactions(
        self,
        *,
        item_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[Transaction]:
        """Newest first. start/end are inclusive bounds on created_at."""

    # -- counts --

    @abstractmethod
    def add_count(self, count: InventoryCount) -> InventoryCount: ...

    @abstractmethod
    def list_counts(
        self,
        *,
        item_id: str | None = None,
        session_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[InventoryCount]:
        """Newest first."""

    # -- count sessions --

    @abstractmethod
    def add_count_session(self, session: CountSession) -> CountSession: ...

    @abstractmethod
    def get_count_session(self, session_id: str) -> Optional[CountSession]: ...

    @abstractmethod
    def update_count_session(self, session_id: str, changes: dict[str, Any]) -> Optional[CountSession]: ...

    @abstractmethod
    def list_count_sessions(self, *, status: str | None = None, limit: int | None = None) -> list[CountSession]:
        """Completed sessions by completed_at desc, otherwise by started_at desc."""

    # -- users and login sessions --

    @abstractmethod
    def list_users(self, *, active_only: bool = False) -> list[User]:
        """Ordered by name."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def add_user(self, user: User) -> User: ...

    @abstractmethod
    def update_user(self, user_id: str, changes: dict[str, Any]) -> Optional[User]: ...

    @abstractmethod
    def add_session_token(self, token: SessionToken) -> SessionToken: ...

    @abstractmethod
    def get_session_token(self, token_hash: str) -> Optional[SessionToken]: ...

    @abstractmethod
    def update_session_token(self, token_id: str, changes: dict[str, Any]) -> Optional[SessionToken]: ...

    # -- assistant --

    @abstractmethod
    def add_ai_count_log(self, log: AICountLog) -> AICountLog: ...

    @abstractmethod
    def list_ai_count_logs(self, *, item_id: str | None = None) -> list[AICountLog]:
        """Newest first."""

    @abstractmethod
    def add_chat_message(self, message: ChatMessage) -> ChatMessage: ...

    @abstractmethod
    def list_chat_messages(self, *, user_id: str | None = None) -> list[ChatMessage]:
        """Oldest first (conversation order)."""

    @abstractmethod
    def clear_chat_messages(self, user_id: str) -> int: ...

    # -- admin --

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every row of every entity, users included."""
