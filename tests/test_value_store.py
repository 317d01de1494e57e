"""Tests for the reference value store."""
import logging

import pytest

from formstate import FieldPath, ROOT, StoreProtocol, ValueStore


def test_store_satisfies_protocol(store):
    assert isinstance(store, StoreProtocol)


def test_initial_values_are_copied():
    initial = {"a": {"b": 1}}
    store = ValueStore(initial)
    initial["a"]["b"] = 2
    assert store.get_values("a.b") == 1


def test_set_value_produces_new_tree(store):
    """Test that earlier trees are never modified by later writes."""
    before = store.get_values()
    store.set_value("items.0.name", "screw")

    assert before["items"][0]["name"] == "bolt"
    assert store.get_values("items.0.name") == "screw"


def test_token_bumps_once_per_change(store):
    token = store.token
    store.set_value("mode", "crm")
    assert store.token == token + 1


def test_subscriber_only_notified_for_overlapping_paths(store):
    calls = []
    store.subscribe(["items.0.active"], calls.append)

    store.set_value("items.1.active", True)
    store.set_value("mode", "crm")
    assert calls == []

    store.set_value("items.0.active", False)
    assert calls == [frozenset({FieldPath.parse("items.0.active")})]


def test_parent_write_notifies_child_subscriber(store):
    calls = []
    store.subscribe(["items.0.active"], calls.append)
    store.set_value("items", [])
    assert len(calls) == 1


def test_subscribe_none_receives_everything(store):
    calls = []
    store.subscribe(None, calls.append)
    store.set_value("mode", "crm")
    store.reset({"mode": "erp"})
    assert calls == [frozenset({FieldPath.parse("mode")}), frozenset({ROOT})]


def test_unsubscribe_stops_notifications(store):
    calls = []
    unsubscribe = store.subscribe(["mode"], calls.append)
    assert store.subscriber_count == 1

    unsubscribe()
    unsubscribe()  # idempotent
    store.set_value("mode", "crm")

    assert calls == []
    assert store.subscriber_count == 0


def test_batch_coalesces_into_one_notification(store):
    """Test that a batch notifies once with every changed path, after all writes."""
    seen = []
    store.subscribe(["items"], lambda changed: seen.append((changed, store.get_values())))
    token = store.token

    with store.batch():
        store.set_value("items.0.active", False)
        with store.batch():
            store.set_value("items.1.active", True)
        assert seen == []

    assert store.token == token + 1
    assert len(seen) == 1
    changed, tree = seen[0]
    assert changed == {FieldPath.parse("items.0.active"), FieldPath.parse("items.1.active")}
    assert tree["items"][0]["active"] is False
    assert tree["items"][1]["active"] is True


def test_non_callable_callback_rejected(store):
    with pytest.raises(TypeError):
        store.subscribe(["mode"], "not callable")


def test_failing_subscriber_is_logged_and_others_still_run(store, caplog):
    calls = []

    def broken(changed):
        raise RuntimeError("boom")

    store.subscribe(["mode"], broken)
    store.subscribe(["mode"], calls.append)

    with caplog.at_level(logging.WARNING, logger="formstate.value_store"):
        store.set_value("mode", "crm")

    assert len(calls) == 1
    assert "boom" in caplog.text


def test_unsubscribing_during_notification_is_safe(store):
    calls = []
    handles = {}

    def first(changed):
        calls.append("first")
        handles["second"]()

    handles["first"] = store.subscribe(["mode"], first)
    handles["second"] = store.subscribe(["mode"], lambda changed: calls.append("second"))

    store.set_value("mode", "crm")
    assert calls == ["first"]
