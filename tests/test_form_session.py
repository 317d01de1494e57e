"""Tests for whole-form snapshot history."""
import pytest

from edithistory import FormSnapshotSession
from formstate import ValueStore


@pytest.fixture
def session(store, scheduler):
    return FormSnapshotSession(store, scheduler=scheduler)


def test_seeded_with_current_values(session, store):
    assert len(session.entries) == 1
    assert session.history.current == store.get_values()
    assert session.history.current is not store.get_values()


def test_burst_of_edits_becomes_one_entry(session, store, scheduler):
    for name in ("G", "Gr", "Gra", "Grace"):
        store.set_value("customer.name", name)

    assert session.pending
    assert len(session.entries) == 1
    assert scheduler.live[0].delay == pytest.approx(0.5)

    scheduler.fire_all()
    assert len(session.entries) == 2
    assert session.history.current["customer"]["name"] == "Grace"


def test_undo_restores_store_without_recording(session, store, scheduler):
    store.set_value("customer.name", "Grace")
    scheduler.fire_all()

    assert session.undo()
    assert store.get_values("customer.name") == "Ada"
    assert not session.pending
    assert len(session.entries) == 2
    assert session.current_index == 0

    assert session.redo()
    assert store.get_values("customer.name") == "Grace"
    assert scheduler.fire_all() == 0


def test_undo_flushes_pending_edit_first(session, store, scheduler):
    store.set_value("customer.name", "Grace")

    assert session.undo()
    assert store.get_values("customer.name") == "Ada"
    assert session.can_redo
    session.redo()
    assert store.get_values("customer.name") == "Grace"


def test_unchanged_snapshot_not_recorded(session, store, scheduler):
    store.set_value("mode", "erp")
    scheduler.fire_all()
    assert len(session.entries) == 1


def test_snapshots_isolated_from_later_edits(session, store, scheduler):
    store.set_value("items.0.qty", 11)
    scheduler.fire_all()
    store.set_value("items.0.qty", 12)
    scheduler.fire_all()
    assert [e.state["items"][0]["qty"] for e in session.entries] == [10, 11, 12]


def test_restoring_guard_suppresses_recording(session, store, scheduler):
    with session.restoring():
        assert session.is_restoring
        store.set_value("mode", "crm")
    assert not session.is_restoring
    assert not session.pending


def test_atomic_records_one_labelled_entry(session, store, scheduler):
    with session.atomic("fill address"):
        store.set_value("customer.name", "Grace")
        with session.atomic("inner"):
            store.set_value("customer.vip", True)
        assert len(session.entries) == 1

    assert not session.pending
    assert len(session.entries) == 2
    assert session.entries[-1].label == "fill address"
    session.undo()
    assert store.get_values("customer") == {"name": "Ada", "vip": False}


def test_atomic_flushes_earlier_edit_separately(session, store, scheduler):
    store.set_value("mode", "crm")
    with session.atomic("bulk"):
        store.set_value("customer.vip", True)
    assert len(session.entries) == 3


def test_goto_index_restores_snapshot(session, store, scheduler):
    for qty in (1, 2, 3):
        store.set_value("items.0.qty", qty)
        scheduler.fire_all()

    assert session.goto_index(1)
    assert store.get_values("items.0.qty") == 1
    assert not session.goto_index(99)


def test_clear_reseeds_with_current_values(session, store, scheduler):
    store.set_value("mode", "crm")
    scheduler.fire_all()
    store.set_value("mode", "pos")

    session.clear()
    assert len(session.entries) == 1
    assert session.history.current["mode"] == "pos"
    assert scheduler.fire_all() == 0


def test_cap_applies(store, scheduler):
    session = FormSnapshotSession(store, max_history=2, scheduler=scheduler)
    for qty in (1, 2, 3):
        store.set_value("items.0.qty", qty)
        scheduler.fire_all()
    assert [e.state["items"][0]["qty"] for e in session.entries] == [2, 3]


def test_close_releases_store_and_timer(store, scheduler):
    with FormSnapshotSession(store, scheduler=scheduler) as session:
        assert store.subscriber_count == 1
        store.set_value("mode", "crm")

    assert session.closed
    assert store.subscriber_count == 0
    assert scheduler.fire_all() == 0
    store.set_value("mode", "pos")
    assert scheduler.live == []


def test_empty_store(scheduler):
    store = ValueStore()
    session = FormSnapshotSession(store, debounce_ms=0, scheduler=scheduler)
    store.set_value("a", 1)
    session.flush()
    assert session.history.states == ({}, {"a": 1})
    session.close()


def test_undo_and_redo_on_store_without_reset(contract_store, scheduler):
    session = FormSnapshotSession(contract_store, scheduler=scheduler)
    contract_store.set_value("name", "second")
    scheduler.fire_all()

    assert session.undo()
    assert contract_store.get_values("name") == "first"
    assert session.redo()
    assert contract_store.get_values() == {"mode": "a", "name": "second", "items": [{"active": True}]}
    assert not session.pending
    assert len(session.entries) == 2


def test_restore_inside_outer_batch_not_recorded(session, store, scheduler):
    """Test that a notification delivered after the restore guard is lifted is ignored."""
    store.set_value("customer.name", "Grace")
    scheduler.fire_all()

    with store.batch():
        assert session.undo()

    assert store.get_values("customer.name") == "Ada"
    assert not session.pending
    assert len(session.entries) == 2
    assert session.current_index == 0
    assert session.can_redo
