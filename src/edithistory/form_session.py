"""
Whole-form snapshot session.

Records deep-copied snapshots of the entire value tree whenever the store
changes. Recording is debounced so a burst of keystrokes becomes one entry.

Restoring a snapshot (undo/redo/goto) writes the snapshot back into the store at
the root path, which fires the store's change notification. A guard flag
suppresses recording for the duration of that write. A notification delivered
later (a host store flushing after an outer batch) carries values equal to the
current entry and is ignored too.
"""

from contextlib import contextmanager
import copy
import logging
from typing import Any, Generator, Optional

from edithistory.debounce import Debouncer, Scheduler
from edithistory.session import HistoryControls
from formstate.config import get_engine_config
from formstate.paths import ROOT

logger = logging.getLogger(__name__)


class FormSnapshotSession(HistoryControls[Any]):
    """Undo/redo over full form value snapshots.

    Only the store contract is used: ``get_values()``, ``subscribe(None, cb)``
    and ``set_value(path, value)``; snapshots are restored with
    ``set_value(ROOT, snapshot)``.

    Example:
        session = FormSnapshotSession(store)
        store.set_value("name", "Ada")
        session.flush()          # or wait for the debounce window
        session.undo()           # store is back to its initial values
    """

    def __init__(
        self,
        store,
        max_history: Optional[int] = None,
        debounce_ms: Optional[int] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        config = get_engine_config()
        self._store = store
        super().__init__(self._snapshot(), max_history=max_history)
        self._restoring = False
        self._atomic_depth = 0
        self._atomic_label: Optional[str] = None
        self._debouncer = Debouncer(
            config.form_debounce_ms if debounce_ms is None else debounce_ms,
            scheduler=scheduler,
            name="form-history",
        )
        self._unsubscribe = store.subscribe(None, self._on_store_change)

    @property
    def is_restoring(self) -> bool:
        return self._restoring

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def _snapshot(self) -> Any:
        return copy.deepcopy(self._store.get_values())

    def _on_store_change(self, changed) -> None:
        if self._restoring or self._closed:
            return
        if self._atomic_depth:
            return
        if self._store.get_values() == self._history.current:
            return
        self._debouncer.call(self._record_current)

    def _record_current(self, label: str = "") -> None:
        with self._lock:
            snapshot = self._snapshot()
            if snapshot == self._history.current:
                logger.debug("Form snapshot unchanged, not recorded")
                return
            self._record(snapshot, label=label)

    def flush(self) -> bool:
        """Record a pending change immediately. Returns True if one was pending."""
        return self._debouncer.flush()

    @contextmanager
    def restoring(self) -> Generator[None, None, None]:
        """Suppress recording while values are written programmatically."""
        previous, self._restoring = self._restoring, True
        try:
            yield
        finally:
            self._restoring = previous

    @contextmanager
    def atomic(self, label: str) -> Generator[None, None, None]:
        """Coalesce every change in the block into a single history entry.

        Nested blocks are supported; only the outermost block records.
        """
        self._debouncer.flush()
        self._atomic_depth += 1
        if self._atomic_depth == 1:
            self._atomic_label = label
        try:
            yield
        finally:
            self._atomic_depth -= 1
            if self._atomic_depth == 0:
                final_label = self._atomic_label or label
                self._atomic_label = None
                self._record_current(label=final_label)

    def _before_navigate(self) -> None:
        # A pending edit becomes its own entry, so undo reverts it
        self._debouncer.flush()

    def _apply_state(self, state: Any) -> None:
        with self.restoring():
            self._store.set_value(ROOT, copy.deepcopy(state))

    def _seed_state(self) -> Any:
        self._debouncer.cancel()
        return self._snapshot()

    def close(self) -> None:
        """Stop recording: cancel the pending timer and release the store subscription."""
        self._debouncer.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        super().close()
