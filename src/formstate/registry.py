"""
Explicit field-kind -> renderer table.

The table is checked when it is built: in strict mode every ``FieldKind`` must
have a renderer.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Set

from formstate.descriptors import FieldDescriptor, FieldKind
from formstate.errors import SchemaError
from formstate.logic_evaluator import FieldResult

logger = logging.getLogger(__name__)

Renderer = Callable[[FieldDescriptor, FieldResult], Any]


class WidgetRegistry:
    """Maps every field kind to the renderer that applies ``FieldResult`` to a widget.

    Example:
        registry = WidgetRegistry({kind: render_generic for kind in FieldKind})
        registry.render(descriptor, result)
    """

    def __init__(self, renderers: Optional[Mapping[FieldKind, Renderer]] = None, strict: bool = True):
        self._renderers: Dict[FieldKind, Renderer] = {}
        for kind, renderer in (renderers or {}).items():
            self._set(kind, renderer)
        if strict:
            self.ensure_complete()

    def _set(self, kind, renderer: Renderer) -> None:
        try:
            kind = FieldKind(kind)
        except ValueError as exc:
            raise SchemaError(f"Unknown field kind {kind!r}") from exc
        if not callable(renderer):
            raise SchemaError(f"Renderer for {kind.value!r} is not callable")
        self._renderers[kind] = renderer

    def register(self, kind: FieldKind) -> Callable[[Renderer], Renderer]:
        """Decorator registering a renderer for ``kind``."""
        def decorator(renderer: Renderer) -> Renderer:
            self._set(kind, renderer)
            return renderer
        return decorator

    def missing_kinds(self) -> Set[FieldKind]:
        return set(FieldKind) - set(self._renderers)

    def ensure_complete(self) -> None:
        """Raise ``SchemaError`` naming every kind without a renderer."""
        missing = self.missing_kinds()
        if missing:
            names = ", ".join(sorted(kind.value for kind in missing))
            raise SchemaError(f"No renderer registered for field kinds: {names}")

    def renderer_for(self, kind: FieldKind) -> Renderer:
        try:
            return self._renderers[FieldKind(kind)]
        except KeyError:
            raise SchemaError(f"No renderer registered for field kind {FieldKind(kind).value!r}") from None

    def render(self, descriptor: FieldDescriptor, result: FieldResult) -> Any:
        """Apply ``result`` through the kind's renderer. Hidden fields render nothing."""
        if not result.visible:
            return None
        return self.renderer_for(descriptor.kind)(descriptor, result)

    def __call__(self, descriptor: FieldDescriptor, result: FieldResult) -> Any:
        return self.render(descriptor, result)

    def __contains__(self, kind) -> bool:
        return FieldKind(kind) in self._renderers
