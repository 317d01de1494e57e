"""
Scoped store subscriptions for a single field.

A watcher subscribes to exactly the field's watch set, never the whole tree,
and calls its recompute callback at most once per store change batch. It is a
scoped resource: acquire on mount, release on unmount or when the watch set
changes.
"""

import logging
from typing import Callable, FrozenSet, Iterable, Optional

from formstate.errors import SubscriptionError
from formstate.paths import FieldPath
from formstate.value_store import StoreProtocol, Unsubscribe

logger = logging.getLogger(__name__)


class DependencyWatcher:
    """Subscription to one field's watch set.

    Example:
        with DependencyWatcher(store, descriptor.watch_set, recompute, label=descriptor.name):
            ...  # recompute() runs on relevant changes only
    """

    def __init__(
        self,
        store: StoreProtocol,
        watch_set: Iterable[FieldPath],
        on_change: Callable[[FrozenSet[FieldPath]], None],
        label: str = "",
    ):
        self._store = store
        self._watch_set: FrozenSet[FieldPath] = frozenset(FieldPath.parse(p) for p in watch_set)
        self._on_change = on_change
        self._label = label
        self._unsubscribe: Optional[Unsubscribe] = None
        self._active = False
        self._last_token: Optional[int] = None

    @property
    def watch_set(self) -> FrozenSet[FieldPath]:
        return self._watch_set

    @property
    def is_mounted(self) -> bool:
        return self._active

    @property
    def is_subscribed(self) -> bool:
        return self._unsubscribe is not None

    def mount(self) -> None:
        """Subscribe to the watch set. Nothing is subscribed for an empty watch set.

        Raises:
            SubscriptionError: If the store refuses the subscription.
        """
        if self._active:
            return
        self._active = True
        if not self._watch_set:
            return
        try:
            unsubscribe = self._store.subscribe(self._watch_set, self._handle_change)
        except Exception as e:
            self._active = False
            raise SubscriptionError(self._label, str(e)) from e
        if not callable(unsubscribe):
            self._active = False
            raise SubscriptionError(self._label, "store returned no unsubscribe handle")
        self._unsubscribe = unsubscribe
        logger.debug(f"Watching {self._label!r}: {sorted(map(str, self._watch_set))}")

    def unmount(self) -> None:
        self._active = False
        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        unsubscribe()
        logger.debug(f"Stopped watching {self._label!r}")

    def update_watch_set(self, watch_set: Iterable[FieldPath]) -> None:
        """Swap the watch set, re-subscribing only if it actually changed."""
        new_set = frozenset(FieldPath.parse(p) for p in watch_set)
        if new_set == self._watch_set:
            return
        was_mounted = self.is_mounted
        self.unmount()
        self._watch_set = new_set
        if was_mounted:
            self.mount()

    def _handle_change(self, changed: FrozenSet[FieldPath]) -> None:
        token = getattr(self._store, 'token', None)
        if token is not None:
            if token == self._last_token:
                return
            self._last_token = token
        self._on_change(changed)

    def __enter__(self) -> 'DependencyWatcher':
        self.mount()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unmount()
