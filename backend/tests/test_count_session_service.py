import pytest

from cladstock.catalog import ROLE_COUNTER, SESSION_COMPLETED, SESSION_IN_PROGRESS
from cladstock.errors import NotFoundError
from cladstock.services import count_service, count_session_service, item_service
from cladstock.storage import get_storage
from cladstock.validation import ValidationError


@pytest.fixture
def actor(any_app, make_user):
    return make_user("Casey Counter", "2222", ROLE_COUNTER)


def _seed_items(n: int, quantity: int = 10):
    item_service.bulk_create_items(
        [{"name": f"Profile {i:03d}", "category": "Extrusions", "quantity": quantity} for i in range(n)]
    )
    get_storage().commit()
    return item_service.list_items()


def test_session_snapshots_catalog_size(any_app, actor):
    _seed_items(5)

    session = count_session_service.create_session("Q3 count", "quarterly", actor)
    get_storage().commit()

    assert session.status == SESSION_IN_PROGRESS
    assert session.total_items == 5
    assert session.counted_items == 0
    assert session.started_by == actor.id

    # Later catalog changes do not move the snapshot
    _seed_items(2)
    assert count_session_service.get_session(session.id).total_items == 5


def test_complete_session_aggregates_counts(any_app, actor):
    items = _seed_items(100)
    session = count_session_service.create_session("Q4 count", "quarterly", actor)
    get_storage().commit()
    assert session.total_items == 100

    for idx, item in enumerate(items[:40]):
        counted = item.quantity + 1 if idx < 7 else item.quantity
        count_service.record_count(item.id, counted, "quarterly", actor, count_session_id=session.id)
    get_storage().commit()

    completed = count_session_service.complete_session(session.id)
    get_storage().commit()

    assert completed.status == SESSION_COMPLETED
    assert completed.counted_items == 40
    assert completed.discrepancy_count == 7
    assert completed.completed_at is not None


def test_complete_session_twice_recomputes(any_app, actor):
    items = _seed_items(3)
    session = count_session_service.create_session("Daily", "daily", actor)
    count_service.record_count(items[0].id, 4, "daily", actor, count_session_id=session.id)
    count_service.record_count(items[1].id, 10, "daily", actor, count_session_id=session.id)
    get_storage().commit()

    first = count_session_service.complete_session(session.id)
    get_storage().commit()
    assert (first.counted_items, first.discrepancy_count) == (2, 1)

    # Recomputed from the count rows, not added on top
    second = count_session_service.complete_session(session.id)
    get_storage().commit()
    assert (second.counted_items, second.discrepancy_count) == (2, 1)


def test_complete_missing_session_raises(any_app):
    with pytest.raises(NotFoundError):
        count_session_service.complete_session("nope")


def test_summary_stats_balance(any_app, actor):
    items = _seed_items(4, quantity=10)
    session = count_session_service.create_session("Spot check", "spot", actor)
    get_storage().commit()

    # +3, -2, -5 and one exact match
    for item, counted in zip(items, (13, 8, 5, 10)):
        count_service.record_count(item.id, counted, "spot", actor, count_session_id=session.id)
    get_storage().commit()

    summary = count_session_service.session_summary(session.id)
    stats = summary["stats"]

    assert summary["session"].id == session.id
    assert stats == {"total": 4, "counted": 4, "discrepancies": 3, "surplus": 3, "shortage": 7}
    assert stats["surplus"] - stats["shortage"] == sum(c.discrepancy for c in summary["counts"])
    assert summary["uncounted_items"] == []


def test_summary_lists_uncounted_items(any_app, actor):
    items = _seed_items(3)
    session = count_session_service.create_session("Partial", "quarterly", actor)
    count_service.record_count(items[1].id, 10, "quarterly", actor, count_session_id=session.id)
    get_storage().commit()

    summary = count_session_service.session_summary(session.id)
    uncounted = {i.id for i in summary["uncounted_items"]}

    assert uncounted == {items[0].id, items[2].id}
    assert {i.id for i in count_session_service.uncounted_items(session.id)} == uncounted


def test_summary_of_missing_session_is_none(any_app):
    assert count_session_service.session_summary("nope") is None


def test_summary_without_backend_is_empty_shape(unconfigured_app):
    summary = count_session_service.session_summary("anything")

    assert summary["session"] is None
    assert summary["counts"] == []
    assert summary["uncounted_items"] == []
    assert summary["stats"] == {"total": 0, "counted": 0, "discrepancies": 0, "surplus": 0, "shortage": 0}


def test_active_and_completed_listing(any_app, actor):
    first = count_session_service.create_session("First", "daily", actor)
    second = count_session_service.create_session("Second", "daily", actor)
    get_storage().commit()

    count_session_service.complete_session(first.id)
    get_storage().commit()

    assert [s.id for s in count_session_service.list_active_sessions()] == [second.id]
    assert [s.id for s in count_session_service.list_completed_sessions()] == [first.id]


def test_update_session_rejects_unknown_fields(any_app, actor):
    session = count_session_service.create_session("Rename me", "spot", actor)
    get_storage().commit()

    renamed = count_session_service.update_session(session.id, {"name": "Renamed"})
    assert renamed.name == "Renamed"

    with pytest.raises(ValueError):
        count_session_service.update_session(session.id, {"started_by": "someone-else"})


def test_create_session_rejects_bad_type(any_app, actor):
    with pytest.raises(ValidationError):
        count_session_service.create_session("Bad", "yearly", actor)
