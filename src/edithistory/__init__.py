"""
Bounded linear undo/redo history and the editing sessions built on it.

Every session owns one ``HistoryStack`` and exposes the same history surface
(``can_undo``, ``can_redo``, ``current_index``, ``entries``, ``undo()``,
``redo()``, ``goto_index()``, ``clear()``):

    - PixelTransformSession: brightness/contrast/saturation/rotation/flip
    - PageLayoutSession: rotate/delete/reorder pages of a paginated document
    - FormSnapshotSession: debounced whole-form value snapshots

Quick Start:
    >>> from edithistory import HistoryStack
    >>> stack = HistoryStack({"brightness": 0})
    >>> stack.push({"brightness": 10})
    >>> stack.push({"brightness": 20})
    >>> stack.undo()
    {'brightness': 10}
    >>> stack.push({"brightness": 5})
    >>> [s["brightness"] for s in stack.states]
    [0, 10, 5]
    >>> stack.can_redo
    False
"""

from edithistory.snapshot_model import HistoryEntry
from edithistory.history_stack import HistoryStack
from edithistory.debounce import Debouncer, thread_timer_scheduler
from edithistory.artifacts import ExportArtifact, ExportError
from edithistory.session import HistoryControls
from edithistory.image_session import ImageAdjustments, NEUTRAL, PixelTransformSession, render_adjusted
from edithistory.document_session import PageLayoutSession, PageState, initial_layout
from edithistory.form_session import FormSnapshotSession
from edithistory.shortcuts import ShortcutAction, dispatch_shortcut, resolve_shortcut

__all__ = [
    # History
    'HistoryEntry',
    'HistoryStack',
    'HistoryControls',
    # Timers
    'Debouncer',
    'thread_timer_scheduler',
    # Export
    'ExportArtifact',
    'ExportError',
    # Sessions
    'ImageAdjustments',
    'NEUTRAL',
    'PixelTransformSession',
    'render_adjusted',
    'PageLayoutSession',
    'PageState',
    'initial_layout',
    'FormSnapshotSession',
    # Shortcuts
    'ShortcutAction',
    'dispatch_shortcut',
    'resolve_shortcut',
]
