"""
In-memory value store.

Reference implementation of the store contract the engine consumes:

    get_values(path=None) -> value
    subscribe(paths, callback) -> unsubscribe
    set_value(path, value)

The tree is copy-on-write: every change produces a new root, so a tree handed
to an evaluator or captured in history is never modified afterwards. A token is
bumped once per settled change; ``batch()`` coalesces nested changes into a
single notification so subscribers only ever see a fully-applied tree.
"""

from contextlib import contextmanager
import copy
import logging
from typing import Any, Callable, Dict, FrozenSet, Generator, Iterable, Optional, Protocol, Set, Union, runtime_checkable

from formstate.paths import FieldPath, ROOT, assoc_in, get_in

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[FrozenSet[FieldPath]], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class StoreProtocol(Protocol):
    """What the engine requires from a host value store."""

    def get_values(self, path: Optional[Union[str, FieldPath]] = None) -> Any: ...

    def subscribe(
        self,
        paths: Optional[Iterable[Union[str, FieldPath]]],
        callback: ChangeCallback,
    ) -> Unsubscribe: ...

    def set_value(self, path: Union[str, FieldPath], value: Any) -> None: ...


class _Subscription:
    __slots__ = ('paths', 'callback')

    def __init__(self, paths: Optional[FrozenSet[FieldPath]], callback: ChangeCallback):
        self.paths = paths
        self.callback = callback

    def matches(self, changed: FrozenSet[FieldPath]) -> bool:
        if self.paths is None:
            return True
        return any(watched.overlaps(path) for watched in self.paths for path in changed)


class ValueStore:
    """Single mutable reference to an immutable-by-convention value tree."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._values: Any = copy.deepcopy(initial) if initial is not None else {}
        self._subscriptions: Dict[int, _Subscription] = {}
        self._next_id = 0
        self._token = 0
        self._batch_depth = 0
        self._pending: Set[FieldPath] = set()

    @property
    def token(self) -> int:
        """Monotonic counter, incremented once per notified change."""
        return self._token

    def get_values(self, path: Optional[Union[str, FieldPath]] = None) -> Any:
        """Current tree, or the subtree at ``path`` (None if absent).

        The returned tree is shared; callers must treat it as read-only.
        """
        if path is None:
            return self._values
        return get_in(self._values, path)

    def set_value(self, path: Union[str, FieldPath], value: Any) -> None:
        field_path = FieldPath.parse(path)
        self._values = assoc_in(self._values, field_path, value)
        self._changed(field_path)

    def reset(self, values: Any) -> None:
        """Replace the whole tree (used when restoring snapshots)."""
        self._values = copy.deepcopy(values)
        self._changed(ROOT)

    @contextmanager
    def batch(self) -> Generator[None, None, None]:
        """Coalesce every change inside the block into one notification.

        Nested batches are supported; only the outermost block notifies.
        """
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending:
                self._flush()

    def subscribe(
        self,
        paths: Optional[Iterable[Union[str, FieldPath]]],
        callback: ChangeCallback,
    ) -> Unsubscribe:
        """Register ``callback`` for changes overlapping ``paths`` (None = all)."""
        if not callable(callback):
            raise TypeError(f"Store callback must be callable, got {type(callback).__name__}")
        watched = None if paths is None else frozenset(FieldPath.parse(p) for p in paths)
        sub_id = self._next_id
        self._next_id += 1
        self._subscriptions[sub_id] = _Subscription(watched, callback)
        logger.debug(f"Store subscription #{sub_id}: {sorted(map(str, watched)) if watched is not None else 'ALL'}")

        def unsubscribe() -> None:
            if self._subscriptions.pop(sub_id, None) is not None:
                logger.debug(f"Store subscription #{sub_id} released")

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _changed(self, path: FieldPath) -> None:
        self._pending.add(path)
        if self._batch_depth == 0:
            self._flush()

    def _flush(self) -> None:
        changed = frozenset(self._pending)
        self._pending.clear()
        self._token += 1
        # Snapshot the table: callbacks may subscribe or unsubscribe while notified
        for sub_id, subscription in list(self._subscriptions.items()):
            if sub_id not in self._subscriptions or not subscription.matches(changed):
                continue
            try:
                subscription.callback(changed)
            except Exception as e:
                logger.warning(f"Store subscriber #{sub_id} failed: {e}")
