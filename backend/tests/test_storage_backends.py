"""
Storage port behaviour: local file persistence, unit-of-work rollback and the
unconfigured backend.
"""

import json
import threading
from decimal import Decimal

import pytest

from cladstock import create_app
from cladstock.errors import NotConfiguredError
from cladstock.services import (
    admin_service,
    count_session_service,
    item_service,
    transaction_service,
    user_service,
)
from cladstock.storage import LocalStorage, SqlStorage, UnconfiguredStorage, build_storage, get_storage


class TestBackendSelection:
    def test_explicit_backends(self, app, local_app, unconfigured_app):
        assert isinstance(app.extensions["cladstock.storage"], SqlStorage)
        assert isinstance(local_app.extensions["cladstock.storage"], LocalStorage)
        assert isinstance(unconfigured_app.extensions["cladstock.storage"], UnconfiguredStorage)

    def test_database_url_selects_sql(self):
        app = create_app({
            "STORAGE_BACKEND": "",
            "DATABASE_URL": "sqlite:///:memory:",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        })
        assert build_storage(app).name == "sql"

    def test_no_database_url_selects_local(self, tmp_path):
        app = create_app({
            "STORAGE_BACKEND": "",
            "DATABASE_URL": None,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "LOCAL_STORAGE_PATH": str(tmp_path / "x.json"),
        })
        assert build_storage(app).name == "local"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            create_app({"STORAGE_BACKEND": "mongo", "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})


class TestLocalStorage:
    def test_commit_persists_to_file(self, local_app, make_item):
        item = make_item(name="Reynobond 4mm", category="ACM", quantity=30, unit_cost=Decimal("42.50"))

        path = local_app.config["LOCAL_STORAGE_PATH"]
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
        assert [r["name"] for r in raw["items"]] == ["Reynobond 4mm"]

        reopened = LocalStorage(path)
        copy = reopened.get_item(item.id)
        assert copy.quantity == 30
        assert copy.unit_cost == Decimal("42.50")
        assert copy.created_at == item.created_at

    def test_rollback_discards_uncommitted_writes(self, local_app, make_item):
        kept = make_item(name="Kept")

        item_service.create_item({"name": "Discarded"})
        item_service.update_item(kept.id, {"quantity": 99})
        get_storage().rollback()

        items = item_service.list_items()
        assert [i.name for i in items] == ["Kept"]
        assert items[0].quantity == 0

    def test_missing_file_starts_empty(self, local_app):
        assert item_service.list_items() == []

    def test_delete_item_cascades(self, local_app, make_item, make_user):
        from cladstock.services import count_service

        actor = make_user("Casey", "2222")
        item = make_item(name="Hat channel", quantity=10)
        transaction_service.pull_item(item.id, 2, actor)
        count_service.record_count(item.id, 7, "spot", actor)
        get_storage().commit()

        assert item_service.delete_item(item.id) is True
        get_storage().commit()

        assert transaction_service.list_item_transactions(item.id) == []
        assert count_service.list_item_counts(item.id) == []
        assert item_service.delete_item(item.id) is False

    def test_close_discards_unfinished_unit_of_work(self, local_app):
        item_service.create_item({"name": "Orphan"})
        get_storage().close()

        assert item_service.list_items() == []
        # The writer lock went with it; another thread can write
        worker = threading.Thread(target=_in_context(local_app, _create_and_commit, "Panel"))
        worker.start()
        worker.join(5)
        assert [i.name for i in item_service.list_items()] == ["Panel"]


def _in_context(app, func, *args):
    def run():
        with app.app_context():
            func(*args)
    return run


def _create_and_commit(name):
    item_service.create_item({"name": name})
    get_storage().commit()


class TestLocalConcurrency:
    """Each thread stages its own unit of work; one writer at a time."""

    @pytest.fixture
    def paused_update(self, local_app, monkeypatch):
        """Hold the first update_item call until `resume` is set."""
        storage = get_storage()
        original = storage.update_item
        events = {"paused": threading.Event(), "resume": threading.Event()}

        def update_item(item_id, changes):
            if not events["paused"].is_set():
                events["paused"].set()
                events["resume"].wait(5)
            return original(item_id, changes)

        monkeypatch.setattr(storage, "update_item", update_item)
        return events

    def _pull_in_thread(self, app, item_id, quantity, actor, done=None):
        def pull():
            transaction_service.pull_item(item_id, quantity, actor)
            get_storage().commit()
            if done is not None:
                done.set()
        worker = threading.Thread(target=_in_context(app, pull))
        worker.start()
        return worker

    def test_rollback_elsewhere_keeps_staged_pull(self, local_app, make_item, make_user, paused_update):
        actor = make_user("Casey", "2222")
        item = make_item(name="Reynobond 4mm", quantity=50)

        worker = self._pull_in_thread(local_app, item.id, 20, actor)
        assert paused_update["paused"].wait(5)
        # A failing request on another thread rolls back its own work only
        get_storage().rollback()
        paused_update["resume"].set()
        worker.join(5)

        assert item_service.get_item(item.id).quantity == 30
        txns = transaction_service.list_item_transactions(item.id)
        assert [(t.type, t.previous_quantity, t.new_quantity) for t in txns] == [("pull", 50, 30)]

    def test_locked_reads_serialize_pulls(self, local_app, make_item, make_user, paused_update):
        actor = make_user("Casey", "2222")
        item = make_item(name="Hat channel", quantity=50)

        first = self._pull_in_thread(local_app, item.id, 20, actor)
        assert paused_update["paused"].wait(5)
        second_done = threading.Event()
        second = self._pull_in_thread(local_app, item.id, 10, actor, done=second_done)

        # The second pull waits on the first one's item lock
        assert not second_done.wait(0.2)
        paused_update["resume"].set()
        first.join(5)
        second.join(5)

        assert second_done.is_set()
        assert item_service.get_item(item.id).quantity == 20
        txns = transaction_service.list_item_transactions(item.id)
        assert sorted((t.previous_quantity, t.new_quantity) for t in txns) == [(30, 20), (50, 30)]


class TestUnconfiguredStorage:
    def test_reads_are_empty(self, unconfigured_app):
        assert item_service.list_items() == []
        assert item_service.get_item("x") is None
        assert item_service.low_stock_items() == []
        assert count_session_service.list_active_sessions() == []
        assert user_service.validate_user_pin("1234") is None

    def test_writes_raise(self, unconfigured_app):
        with pytest.raises(NotConfiguredError):
            item_service.create_item({"name": "Panel"})
        with pytest.raises(NotConfiguredError):
            user_service.seed_default_user()

    def test_reset_reports_failure(self, unconfigured_app):
        assert admin_service.reset_all_data() == {"success": False, "message": "Database not configured"}


def test_reset_all_data_recreates_admin(any_app, make_item, make_user):
    make_user("Jordan", "5678")
    make_item(name="Panel")

    result = admin_service.reset_all_data()
    get_storage().commit()

    assert result["success"] is True
    assert item_service.list_items() == []
    users = user_service.list_users()
    assert [u.id for u in users] == [user_service.DEFAULT_ADMIN_ID]
    assert user_service.validate_user_pin(user_service.DEFAULT_ADMIN_PIN) is not None
