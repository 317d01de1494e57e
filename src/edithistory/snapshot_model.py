"""
History entry model.

An entry is an immutable record of one state snapshot at a point in time,
analogous to a commit in a linear history.
"""

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar
import time
import uuid

T = TypeVar('T')


@dataclass(frozen=True)
class HistoryEntry(Generic[T]):
    """Immutable snapshot of one state.

    The state itself must be treated as immutable: sessions store frozen
    dataclasses, tuples or deep copies, never live objects.
    """
    state: T
    timestamp: float
    label: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()), compare=False)

    @classmethod
    def create(cls, state: T, label: str = "", clock: Callable[[], float] = time.time) -> 'HistoryEntry[T]':
        """Create an entry with auto-generated ID and timestamp."""
        return cls(state=state, timestamp=clock(), label=label)
