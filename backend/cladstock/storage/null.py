# Overview: StoragePort used when no persistence backend is configured.

from __future__ import annotations

from ..errors import NotConfiguredError
from .base import StoragePort


def _refuse(*args, **kwargs):
    raise NotConfiguredError()


class UnconfiguredStorage(StoragePort):
    """
    Reads degrade to empty results; every write raises NotConfiguredError.

    Callers that must tell "no such row" apart from "no backend at all"
    check is_configured.
    """
    name = "none"
    is_configured = False

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass

    def list_items(self):
        return []

    def get_item(self, item_id, *, lock=False):
        return None

    def count_items(self):
        return 0

    def list_low_stock_items(self):
        return []

    def list_transactions(self, *, item_id=None, start=None, end=None, limit=None):
        return []

    def list_counts(self, *, item_id=None, session_id=None, start=None, end=None):
        return []

    def get_count_session(self, session_id):
        return None

    def list_count_sessions(self, *, status=None, limit=None):
        return []

    def list_users(self, *, active_only=False):
        return []

    def get_user(self, user_id):
        return None

    def get_session_token(self, token_hash):
        return None

    def list_ai_count_logs(self, *, item_id=None):
        return []

    def list_chat_messages(self, *, user_id=None):
        return []

    add_item = _refuse
    add_items = _refuse
    update_item = _refuse
    delete_item = _refuse
    add_transaction = _refuse
    add_count = _refuse
    add_count_session = _refuse
    update_count_session = _refuse
    add_user = _refuse
    update_user = _refuse
    add_session_token = _refuse
    update_session_token = _refuse
    add_ai_count_log = _refuse
    add_chat_message = _refuse
    clear_chat_messages = _refuse
    delete_all = _refuse
