"""
Keyboard shortcuts for history sessions.

    Ctrl/Cmd+Z          undo
    Ctrl/Cmd+Y          redo
    Ctrl/Cmd+Shift+Z    redo

Hosts translate their key events into ``dispatch_shortcut`` calls.
"""

from enum import Enum
from typing import Optional

from formstate.config import get_engine_config


class ShortcutAction(str, Enum):
    UNDO = "undo"
    REDO = "redo"


def resolve_shortcut(key: str, ctrl: bool = False, meta: bool = False, shift: bool = False) -> Optional[ShortcutAction]:
    """Map a key chord to a history action, or None."""
    if not (ctrl or meta):
        return None
    key = key.lower()
    if key == "z":
        return ShortcutAction.REDO if shift else ShortcutAction.UNDO
    if key == "y":
        return ShortcutAction.REDO
    return None


def dispatch_shortcut(session, key: str, ctrl: bool = False, meta: bool = False, shift: bool = False) -> bool:
    """Run the history action bound to the chord on ``session``.

    Returns True if the chord was a history shortcut (the host should then
    suppress its default handling), even when there was nothing to undo/redo.
    """
    if not get_engine_config().enable_keyboard_shortcuts:
        return False
    action = resolve_shortcut(key, ctrl=ctrl, meta=meta, shift=shift)
    if action is None:
        return False
    if action is ShortcutAction.UNDO:
        session.undo()
    else:
        session.redo()
    return True
