"""
Common history surface shared by every editing session.

Each session owns exactly one ``HistoryStack`` and exposes the contract a
history panel or toolbar consumes:

    can_undo, can_redo, current_index, entries,
    undo(), redo(), goto_index(i), clear(), close()

Subclasses implement ``_apply_state`` (make a restored snapshot current) and
``_seed_state`` (the state ``clear()`` reseeds with).

Debounced commits may run on a timer thread. Every mutation of session state or
history happens under the session's reentrant lock, so a timer commit and a
call from the owning thread never interleave. Hosts with an event loop pass a
scheduler that runs callbacks on the loop instead.
"""

from abc import ABC, abstractmethod
import logging
import threading
from typing import Callable, Generic, Optional, Tuple, TypeVar

from edithistory.history_stack import HistoryStack
from edithistory.snapshot_model import HistoryEntry

logger = logging.getLogger(__name__)

T = TypeVar('T')


class HistoryControls(ABC, Generic[T]):
    """Undo/redo surface over a private ``HistoryStack``."""

    _history: HistoryStack[T]

    def __init__(self, seed: T, max_history: Optional[int] = None):
        self._lock = threading.RLock()
        self._history = HistoryStack(seed, max_size=max_history)
        self._closed = False

    @abstractmethod
    def _apply_state(self, state: T) -> None:
        """Make ``state`` the session's current state."""

    @abstractmethod
    def _seed_state(self) -> T:
        """State used to reseed history on ``clear()``."""

    def _before_navigate(self) -> None:
        """Hook run before undo/redo/goto (e.g. to flush pending recordings)."""

    @property
    def history(self) -> HistoryStack[T]:
        return self._history

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    @property
    def current_index(self) -> int:
        return self._history.current_index

    @property
    def entries(self) -> Tuple[HistoryEntry[T], ...]:
        return self._history.entries

    @property
    def closed(self) -> bool:
        return self._closed

    def add_history_listener(self, callback: Callable[[], None]) -> None:
        self._history.add_listener(callback)

    def remove_history_listener(self, callback: Callable[[], None]) -> None:
        self._history.remove_listener(callback)

    def _record(self, state: T, label: str = "") -> None:
        with self._lock:
            self._history.push(state, label=label)

    def _navigate(self, step: Callable[[], Optional[T]], action: str) -> bool:
        with self._lock:
            self._before_navigate()
            restore_index = self._history.current_index
            state = step()
            if self._history.current_index == restore_index:
                return False
            self._apply_state(state)
        logger.debug(f"{type(self).__name__}: {action} -> index {self._history.current_index}")
        return True

    def undo(self) -> bool:
        """Restore the previous snapshot. Returns False when there is nothing to undo."""
        return self._navigate(self._history.undo, "undo")

    def redo(self) -> bool:
        """Restore the next snapshot. Returns False when there is nothing to redo."""
        return self._navigate(self._history.redo, "redo")

    def goto_index(self, index: int) -> bool:
        """Restore the snapshot at ``index``. Returns False if out of range or already there."""
        return self._navigate(lambda: self._history.goto_index(index), f"goto {index}")

    def clear(self) -> None:
        """Drop all history, reseeding with the current state."""
        with self._lock:
            self._history.clear(self._seed_state())

    def close(self) -> None:
        """Release timers and other resources owned by the session."""
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
