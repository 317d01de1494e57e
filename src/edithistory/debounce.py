"""
Debounced calls with owner-controlled cancellation.

A ``Debouncer`` keeps at most one pending call. Each ``call()`` cancels the
pending one and schedules a new one after the delay. The owning session must
``cancel()`` (or ``flush()``) on teardown so nothing fires against a discarded
session.

Scheduling is pluggable: the default uses ``threading.Timer``; event-loop hosts
and tests pass their own ``scheduler(delay_seconds, fn) -> handle`` where
``handle.cancel()`` prevents ``fn`` from running.
"""

import logging
import threading
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def thread_timer_scheduler(delay_seconds: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay_seconds, fn)
    timer.daemon = True
    timer.start()
    return timer


class Debouncer:
    """Coalesces rapid calls into one trailing call."""

    def __init__(self, delay_ms: int, scheduler: Optional[Scheduler] = None, name: str = ""):
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        self._delay_seconds = delay_ms / 1000.0
        self._scheduler = scheduler or thread_timer_scheduler
        self._name = name
        self._lock = threading.RLock()
        self._handle: Optional[Cancellable] = None
        self._pending: Optional[Callable[[], Any]] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def call(self, fn: Callable[..., Any], *args, **kwargs) -> None:
        """Schedule ``fn(*args, **kwargs)``, replacing any pending call."""
        with self._lock:
            self._cancel_handle()
            self._generation += 1
            generation = self._generation
            self._pending = lambda: fn(*args, **kwargs)
            self._handle = self._scheduler(self._delay_seconds, lambda: self._fire(generation))

    def flush(self) -> bool:
        """Run the pending call now. Returns True if something ran."""
        with self._lock:
            pending = self._take()
        if pending is None:
            return False
        pending()
        return True

    def cancel(self) -> None:
        """Drop the pending call without running it."""
        with self._lock:
            if self._take() is not None:
                logger.debug(f"Debouncer {self._name!r}: pending call cancelled")

    def _take(self) -> Optional[Callable[[], Any]]:
        self._cancel_handle()
        pending, self._pending = self._pending, None
        return pending

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A stale timer may still fire after being superseded
            if generation != self._generation or self._pending is None:
                return
            pending, self._pending = self._pending, None
            self._handle = None
        pending()
