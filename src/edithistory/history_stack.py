"""
Bounded, linear undo/redo history over immutable state snapshots.

Invariants:
    - there is always at least one entry (the seed)
    - 0 <= pointer <= len(entries) - 1
    - pushing while the pointer is not at the newest entry discards everything
      after the pointer (no branching: the discarded future is gone)
    - len(entries) <= max_size; when a push exceeds it the oldest entry is
      dropped and the pointer shifts down with it

Navigation outside the available range is a no-op, never an error.
"""

import logging
from typing import Callable, Generic, List, Optional, Tuple, TypeVar
import time

from edithistory.snapshot_model import HistoryEntry
from formstate.config import get_engine_config

logger = logging.getLogger(__name__)

T = TypeVar('T')


class HistoryStack(Generic[T]):
    """Linear history with a movable pointer.

    Example:
        stack = HistoryStack({"brightness": 0})
        stack.push({"brightness": 10})
        stack.push({"brightness": 20})
        stack.undo()                      # -> {"brightness": 10}
        stack.push({"brightness": 5})     # drops {"brightness": 20}
        [e.state for e in stack.entries]  # [{0}, {10}, {5}]
    """

    def __init__(
        self,
        seed: T,
        max_size: Optional[int] = None,
        clock: Callable[[], float] = time.time,
        label: str = "initial",
    ):
        if max_size is None:
            max_size = get_engine_config().max_history
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._max_size = max_size
        self._clock = clock
        self._entries: List[HistoryEntry[T]] = []
        self._pointer = 0
        self._listeners: List[Callable[[], None]] = []
        self.init(seed, label=label)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback fired after every change to entries or pointer."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Error in history listener: {e}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def entries(self) -> Tuple[HistoryEntry[T], ...]:
        return tuple(self._entries)

    @property
    def states(self) -> Tuple[T, ...]:
        return tuple(entry.state for entry in self._entries)

    @property
    def current_index(self) -> int:
        return self._pointer

    @property
    def current_entry(self) -> HistoryEntry[T]:
        return self._entries[self._pointer]

    @property
    def current(self) -> T:
        return self._entries[self._pointer].state

    @property
    def can_undo(self) -> bool:
        return self._pointer > 0

    @property
    def can_redo(self) -> bool:
        return self._pointer < len(self._entries) - 1

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def init(self, seed: T, label: str = "initial") -> None:
        """Reset to a single seed entry."""
        self._entries = [HistoryEntry.create(seed, label=label, clock=self._clock)]
        self._pointer = 0
        self._notify()

    def clear(self, seed: T, label: str = "initial") -> None:
        self.init(seed, label=label)

    def push(self, state: T, label: str = "") -> None:
        """Append ``state`` after the pointer, discarding any redo future."""
        discarded = len(self._entries) - 1 - self._pointer
        del self._entries[self._pointer + 1:]
        self._entries.append(HistoryEntry.create(state, label=label, clock=self._clock))
        self._pointer = len(self._entries) - 1
        if len(self._entries) > self._max_size:
            self._entries.pop(0)
            self._pointer -= 1
        if discarded:
            logger.debug(f"History push discarded {discarded} redo entr{'y' if discarded == 1 else 'ies'}")
        self._notify()

    def undo(self) -> Optional[T]:
        """Step back. Returns the restored state, or None at the oldest entry."""
        if self._pointer == 0:
            return None
        self._pointer -= 1
        self._notify()
        return self._entries[self._pointer].state

    def redo(self) -> Optional[T]:
        """Step forward. Returns the restored state, or None at the newest entry."""
        if self._pointer == len(self._entries) - 1:
            return None
        self._pointer += 1
        self._notify()
        return self._entries[self._pointer].state

    def goto_index(self, index: int) -> Optional[T]:
        """Jump to ``index``. Returns the restored state, or None if out of range."""
        if index < 0 or index >= len(self._entries):
            logger.warning(f"History index {index} out of range [0, {len(self._entries) - 1}]")
            return None
        if index != self._pointer:
            self._pointer = index
            self._notify()
        return self._entries[self._pointer].state
