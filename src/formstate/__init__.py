"""
Schema-driven field logic for dynamically composed forms.

Decides, for every field in a form schema, whether it is currently visible and
which prop overrides apply, given a tree of values and each field's declared
dependencies.

Quick Start:
    >>> from formstate import (
    ...     FieldDescriptor, FieldKind, ArrayLayout, FormEngine, ValueStore,
    ... )
    >>> schema = [
    ...     ArrayLayout("items", item_schema=[
    ...         FieldDescriptor(FieldKind.TEXT, "name",
    ...                         dependencies=["active", "!mode"],
    ...                         visibility=lambda scope, root: scope["active"]),
    ...     ]),
    ... ]
    >>> store = ValueStore({"mode": "erp", "items": [{"active": True, "name": ""}]})
    >>> with FormEngine(schema, store) as engine:
    ...     store.set_value("items.0.active", False)
    ...     engine.result_for("items.0.name").visible
    False

Architecture:
    Field path -> ScopeResolver -> watch set + scope prefix
    Watch set  -> DependencyWatcher -> store subscription (exact paths only)
    Change     -> LogicEvaluator(scope, root, GlobalContext) -> FieldResult
    FieldResult -> renderer (WidgetRegistry or any callable)

Modules:
    - paths: structured dot paths and copy-on-write tree access
    - descriptors: leaf and layout descriptors, schema walking
    - scope_resolver: scope prefix and watch set computation
    - value_store: reference store implementation and store protocol
    - dependency_watcher: scoped store subscriptions per field
    - logic_evaluator: fail-open visibility/props evaluation
    - registry: exhaustive field kind -> renderer table
    - form_engine: end-to-end wiring for a mounted form
    - config: engine configuration (thread-local + context overrides)
"""

from formstate.errors import FormStateError, SchemaError, SubscriptionError

from formstate.paths import FieldPath, ROOT, get_in, assoc_in

from formstate.scope_resolver import (
    DependencySpec,
    ScopeResolution,
    derive_scope_prefix,
    resolve_scope,
)

from formstate.descriptors import (
    FieldKind,
    FieldDescriptor,
    SectionLayout,
    GroupLayout,
    WizardLayout,
    WizardStep,
    ArrayLayout,
    walk_fields,
    iter_array_layouts,
)

from formstate.value_store import StoreProtocol, ValueStore

from formstate.dependency_watcher import DependencyWatcher

from formstate.logic_evaluator import FieldResult, GlobalContext, LogicEvaluator

from formstate.registry import WidgetRegistry

from formstate.form_engine import FormEngine

from formstate.config import (
    EngineConfig,
    get_engine_config,
    set_engine_config,
    reset_engine_config,
    engine_config_context,
)

__all__ = [
    # Errors
    'FormStateError',
    'SchemaError',
    'SubscriptionError',
    # Paths
    'FieldPath',
    'ROOT',
    'get_in',
    'assoc_in',
    # Scope
    'DependencySpec',
    'ScopeResolution',
    'derive_scope_prefix',
    'resolve_scope',
    # Descriptors
    'FieldKind',
    'FieldDescriptor',
    'SectionLayout',
    'GroupLayout',
    'WizardLayout',
    'WizardStep',
    'ArrayLayout',
    'walk_fields',
    'iter_array_layouts',
    # Store
    'StoreProtocol',
    'ValueStore',
    # Watching and evaluation
    'DependencyWatcher',
    'FieldResult',
    'GlobalContext',
    'LogicEvaluator',
    'WidgetRegistry',
    'FormEngine',
    # Config
    'EngineConfig',
    'get_engine_config',
    'set_engine_config',
    'reset_engine_config',
    'engine_config_context',
]
