"""
Field logic evaluation.

Runs a field's visibility and dynamic-props functions against ``(scope, root)``
and merges the outcome with base props and mandatory global overrides:

    base props < dynamic props < global overrides

Global overrides (taken from an explicit ``GlobalContext``, never ambient state):
    submitting -> disabled
    read_only  -> disabled and read_only

Evaluation is fail-open: if field logic raises, the field is treated as visible
with no dynamic overrides, the error is logged and handed to the optional error
reporter.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from formstate.descriptors import FieldDescriptor

logger = logging.getLogger(__name__)

DISABLED = "disabled"
READ_ONLY = "read_only"

ErrorReporter = Callable[[FieldDescriptor, Exception], None]


@dataclass(frozen=True)
class GlobalContext:
    """Form-wide flags that override per-field logic."""
    submitting: bool = False
    read_only: bool = False


@dataclass(frozen=True)
class FieldResult:
    """What the renderer receives for one field."""
    visible: bool
    props: Mapping[str, Any] = field(default_factory=dict)
    error: Optional[Exception] = field(default=None, compare=False)

    @property
    def failed(self) -> bool:
        return self.error is not None


class LogicEvaluator:
    """Evaluates descriptors. Stateless apart from the error reporter."""

    def __init__(self, on_error: Optional[ErrorReporter] = None):
        self._on_error = on_error

    def evaluate(
        self,
        descriptor: FieldDescriptor,
        scope: Any,
        root: Any,
        global_context: GlobalContext = GlobalContext(),
    ) -> FieldResult:
        error = None
        try:
            visible = self._run_visibility(descriptor, scope, root)
            dynamic = self._run_props_logic(descriptor, scope, root)
        except Exception as e:
            logger.error(f"Field logic failed for '{descriptor.name}', rendering with defaults: {e}")
            self._report(descriptor, e)
            visible, dynamic, error = True, {}, e

        props = self.merge_props(descriptor.props, dynamic, global_context)
        return FieldResult(visible=visible, props=props, error=error)

    @staticmethod
    def merge_props(
        base: Mapping[str, Any],
        dynamic: Mapping[str, Any],
        global_context: GlobalContext,
    ) -> Dict[str, Any]:
        """Merge props with precedence base < dynamic < global overrides."""
        merged = dict(base)
        merged.update(dynamic)
        merged[DISABLED] = bool(merged.get(DISABLED, False))
        merged[READ_ONLY] = bool(merged.get(READ_ONLY, False))
        if global_context.submitting or global_context.read_only:
            merged[DISABLED] = True
        if global_context.read_only:
            merged[READ_ONLY] = True
        return merged

    @staticmethod
    def _run_visibility(descriptor: FieldDescriptor, scope: Any, root: Any) -> bool:
        if descriptor.visibility is None:
            return True
        return bool(descriptor.visibility(scope, root))

    @staticmethod
    def _run_props_logic(descriptor: FieldDescriptor, scope: Any, root: Any) -> Mapping[str, Any]:
        if descriptor.props_logic is None:
            return {}
        result = descriptor.props_logic(scope, root)
        if result is None:
            return {}
        if not isinstance(result, Mapping):
            raise TypeError(
                f"props_logic must return a mapping, got {type(result).__name__}"
            )
        return result

    def _report(self, descriptor: FieldDescriptor, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(descriptor, error)
        except Exception as e:
            logger.warning(f"Error reporter failed for '{descriptor.name}': {e}")
