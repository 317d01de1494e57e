"""
Form engine: schema walk -> scope resolution -> watchers -> evaluation -> renderer.

For every leaf field the engine mounts one ``DependencyWatcher`` on the field's
watch set. When a store batch touches that set, the field (and only that field)
is re-evaluated against the settled tree and the result is handed to the
renderer. Array layouts are watched at their own path; when an array's length
changes, bindings are rebuilt so removed items release their subscriptions and
new items acquire theirs.

The engine only reads the store. It never writes values back.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from formstate.dependency_watcher import DependencyWatcher
from formstate.descriptors import ArrayLayout, FieldDescriptor, SchemaItem, iter_array_layouts, walk_fields
from formstate.logic_evaluator import FieldResult, GlobalContext, LogicEvaluator
from formstate.paths import FieldPath
from formstate.token_cache import SingleValueTokenCache, TokenCache
from formstate.value_store import StoreProtocol

logger = logging.getLogger(__name__)

RenderCallback = Callable[[FieldDescriptor, FieldResult], Any]


class FieldBinding:
    """One mounted field: its descriptor, its watcher and its latest result."""

    def __init__(self, descriptor: FieldDescriptor, watcher: DependencyWatcher):
        self.descriptor = descriptor
        self.watcher = watcher
        self.result: Optional[FieldResult] = None


class FormEngine:
    """Drives field visibility and props for one mounted form.

    Example:
        engine = FormEngine(schema, store, registry)
        with engine:
            store.set_value("items.0.active", True)  # re-evaluates dependents only
            engine.result_for("items.0.name").visible
    """

    def __init__(
        self,
        schema: Sequence[SchemaItem],
        store: StoreProtocol,
        renderer: Optional[RenderCallback] = None,
        global_context: GlobalContext = GlobalContext(),
        evaluator: Optional[LogicEvaluator] = None,
    ):
        self._schema = tuple(schema)
        self._store = store
        self._renderer = renderer
        self._global_context = global_context
        self._evaluator = evaluator or LogicEvaluator()
        self._bindings: Dict[str, FieldBinding] = {}
        self._array_watchers: Dict[str, DependencyWatcher] = {}
        self._array_layouts: Dict[str, ArrayLayout] = {}
        self._array_lengths: Dict[str, int] = {}
        self._mounted = False
        self._revision = 0

        token_provider = self._token
        self._result_cache: TokenCache[FieldResult] = TokenCache(token_provider)
        self._fields_cache: SingleValueTokenCache[List[FieldDescriptor]] = SingleValueTokenCache(token_provider)

    def _token(self) -> int:
        # Stores without a token fall back to a count of delivered changes
        token = getattr(self._store, 'token', None)
        return self._revision if token is None else token

    @property
    def global_context(self) -> GlobalContext:
        return self._global_context

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    @property
    def results(self) -> Dict[str, FieldResult]:
        return {path: b.result for path, b in self._bindings.items() if b.result is not None}

    def result_for(self, path: str) -> Optional[FieldResult]:
        binding = self._bindings.get(str(FieldPath.parse(path)))
        return binding.result if binding else None

    def visible_fields(self) -> List[FieldDescriptor]:
        return [b.descriptor for b in self._bindings.values() if b.result is not None and b.result.visible]

    def fields(self) -> List[FieldDescriptor]:
        """Leaf descriptors for the current tree, array items expanded."""
        return self._fields_cache.get_or_compute(
            lambda: list(walk_fields(self._schema, self._store.get_values()))
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mount(self) -> None:
        """Bind every field and emit initial results.

        Raises:
            SubscriptionError: If any field's watch set cannot be subscribed.
        """
        if self._mounted:
            return
        self._mounted = True
        try:
            self._sync_bindings()
        except Exception:
            self.unmount()
            raise
        logger.debug(f"Mounted form: {len(self._bindings)} field(s), {len(self._array_watchers)} array(s)")

    def unmount(self) -> None:
        for binding in self._bindings.values():
            binding.watcher.unmount()
        for watcher in self._array_watchers.values():
            watcher.unmount()
        self._bindings.clear()
        self._array_watchers.clear()
        self._array_layouts.clear()
        self._array_lengths.clear()
        self._result_cache.invalidate()
        self._fields_cache.invalidate()
        self._mounted = False
        logger.debug("Unmounted form")

    def __enter__(self) -> 'FormEngine':
        self.mount()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unmount()

    def set_global_context(self, global_context: GlobalContext) -> None:
        """Swap global flags and re-evaluate every field."""
        if global_context == self._global_context:
            return
        self._global_context = global_context
        self._result_cache.invalidate()
        for path in list(self._bindings):
            self._recompute(path)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _sync_bindings(self) -> None:
        root = self._store.get_values()
        wanted = {str(d.path): d for d in self.fields()}

        for path in [p for p in self._bindings if p not in wanted]:
            self._bindings.pop(path).watcher.unmount()
            self._result_cache.discard(path)

        added = []
        for path, descriptor in wanted.items():
            if path in self._bindings:
                continue
            watcher = DependencyWatcher(
                self._store,
                descriptor.watch_set,
                lambda changed, p=path: self._on_field_change(p),
                label=path,
            )
            self._bindings[path] = FieldBinding(descriptor, watcher)
            watcher.mount()
            added.append(path)

        self._sync_array_watchers(root)

        for path in added:
            self._recompute(path)

    def _sync_array_watchers(self, root: Any) -> None:
        arrays = {str(a.path): a for a in iter_array_layouts(self._schema, root)}
        for path in [p for p in self._array_watchers if p not in arrays]:
            self._array_watchers.pop(path).unmount()
            self._array_layouts.pop(path, None)
            self._array_lengths.pop(path, None)
        for path, layout in arrays.items():
            self._array_layouts[path] = layout
            self._array_lengths[path] = layout.item_count(root)
            if path in self._array_watchers:
                continue
            watcher = DependencyWatcher(
                self._store,
                [layout.path],
                lambda changed: self._on_array_change(),
                label=f"{path}[]",
            )
            self._array_watchers[path] = watcher
            watcher.mount()

    def _refresh_arrays(self) -> None:
        root = self._store.get_values()
        resized = [
            path for path, layout in self._array_layouts.items()
            if layout.item_count(root) != self._array_lengths.get(path)
        ]
        if not resized:
            return
        logger.debug(f"Arrays resized {resized}, rebinding")
        self._fields_cache.invalidate()
        self._sync_bindings()

    def _on_array_change(self) -> None:
        self._revision += 1
        self._refresh_arrays()

    def _on_field_change(self, path: str) -> None:
        self._revision += 1
        # Bindings of removed array items must go before they are evaluated
        self._refresh_arrays()
        self._recompute(path)

    def _recompute(self, path: str) -> None:
        binding = self._bindings.get(path)
        if binding is None:
            return
        result = self._result_cache.get_or_compute(path, lambda: self._evaluate(binding.descriptor))
        if result == binding.result:
            return
        binding.result = result
        if self._renderer is not None:
            self._renderer(binding.descriptor, result)

    def _evaluate(self, descriptor: FieldDescriptor) -> FieldResult:
        root = self._store.get_values()
        scope = descriptor.resolution.scope_value(root)
        return self._evaluator.evaluate(descriptor, scope, root, self._global_context)
