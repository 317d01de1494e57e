"""Tests for per-field scoped subscriptions."""
import pytest

from formstate import DependencyWatcher, FieldPath, SubscriptionError, ValueStore


def watch(*raw):
    return [FieldPath.parse(p) for p in raw]


class RefusingStore(ValueStore):
    def subscribe(self, paths, callback):
        raise ConnectionError("store offline")


class HandlelessStore(ValueStore):
    def subscribe(self, paths, callback):
        return None


class TestMountLifecycle:
    """Acquire on mount, release on unmount."""

    def test_mount_subscribes_and_unmount_releases(self, store):
        watcher = DependencyWatcher(store, watch("items.0.active"), lambda changed: None)
        assert store.subscriber_count == 0

        watcher.mount()
        assert watcher.is_mounted and watcher.is_subscribed
        assert store.subscriber_count == 1

        watcher.unmount()
        assert not watcher.is_mounted
        assert store.subscriber_count == 0

    def test_mount_twice_subscribes_once(self, store):
        watcher = DependencyWatcher(store, watch("mode"), lambda changed: None)
        watcher.mount()
        watcher.mount()
        assert store.subscriber_count == 1

    def test_empty_watch_set_subscribes_nothing(self, store):
        watcher = DependencyWatcher(store, [], lambda changed: None)
        watcher.mount()
        assert watcher.is_mounted
        assert not watcher.is_subscribed
        assert store.subscriber_count == 0

    def test_context_manager(self, store):
        with DependencyWatcher(store, watch("mode"), lambda changed: None):
            assert store.subscriber_count == 1
        assert store.subscriber_count == 0


class TestNotifications:
    """Recompute callbacks."""

    def test_fires_only_for_watched_paths(self, store):
        calls = []
        with DependencyWatcher(store, watch("items.2.active", "mode"), calls.append):
            store.set_value("items.1.active", True)
            store.set_value("customer.name", "Grace")
            assert calls == []

            store.set_value("items.2.active", False)
            store.set_value("mode", "crm")
            assert len(calls) == 2

    def test_fires_once_per_batch(self, store):
        calls = []
        with DependencyWatcher(store, watch("items.2.active", "mode"), calls.append):
            with store.batch():
                store.set_value("items.2.active", False)
                store.set_value("mode", "crm")
        assert len(calls) == 1

    def test_no_callbacks_after_unmount(self, store):
        calls = []
        watcher = DependencyWatcher(store, watch("mode"), calls.append)
        watcher.mount()
        watcher.unmount()
        store.set_value("mode", "crm")
        assert calls == []


class TestUpdateWatchSet:
    """Resubscription when the watch set changes."""

    def test_swaps_subscription(self, store):
        calls = []
        watcher = DependencyWatcher(store, watch("mode"), calls.append)
        watcher.mount()

        watcher.update_watch_set(watch("customer.vip"))
        assert store.subscriber_count == 1

        store.set_value("mode", "crm")
        assert calls == []
        store.set_value("customer.vip", True)
        assert len(calls) == 1

    def test_unmounted_watcher_stays_unmounted(self, store):
        watcher = DependencyWatcher(store, watch("mode"), lambda changed: None)
        watcher.update_watch_set(watch("customer"))
        assert not watcher.is_mounted
        assert store.subscriber_count == 0


class TestSubscriptionFailures:
    """Store refusals surface as SubscriptionError."""

    def test_store_exception_wrapped(self):
        watcher = DependencyWatcher(RefusingStore(), watch("mode"), lambda changed: None, label="title")
        with pytest.raises(SubscriptionError, match="title"):
            watcher.mount()
        assert not watcher.is_mounted

    def test_missing_unsubscribe_handle(self):
        watcher = DependencyWatcher(HandlelessStore(), watch("mode"), lambda changed: None)
        with pytest.raises(SubscriptionError):
            watcher.mount()
        assert not watcher.is_mounted
