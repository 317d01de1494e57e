"""
Field descriptor tree.

A form schema is an ordered list of items. Each item is either a leaf
``FieldDescriptor`` (an input bound to a value path) or a layout container
(section, group, wizard, array) holding child items. Layouts carry no
dependency semantics; only leaves are evaluated.

Descriptors are immutable. Array layouts hold an item *template* whose leaf
names are relative to one array element; ``walk_fields`` expands the template
against the current value tree.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional, Tuple, Union

from formstate.errors import SchemaError
from formstate.paths import FieldPath, get_in
from formstate.scope_resolver import ScopeResolution, resolve_scope

VisibilityFn = Callable[[Any, Any], bool]
PropsFn = Callable[[Any, Any], Optional[Mapping[str, Any]]]


class FieldKind(str, Enum):
    """Closed set of leaf input kinds. Every kind needs a renderer in the registry."""
    TEXT = "text"
    PASSWORD = "password"
    NUMBER = "number"
    HIDDEN = "hidden"
    COLOR = "color"
    OTP = "otp"
    MASK = "mask"
    EMAIL = "email"
    TEL = "tel"
    URL = "url"
    SELECT = "select"
    CHECKBOX = "checkbox"
    SWITCH = "switch"
    RADIO = "radio"
    SEGMENTED = "segmented"
    AUTOCOMPLETE = "autocomplete"
    TAXONOMY = "taxonomy"
    SLIDER = "slider"
    RANGE_SLIDER = "range-slider"
    RATING = "rating"
    TOGGLE_GROUP = "toggle-group"
    DATE = "date"
    DATE_RANGE = "date-range"
    TIME = "time"
    RICH_TEXT = "rich-text"
    SIGNATURE = "signature"
    GEO = "geo"
    MATH = "math"
    CALCULATED = "calculated"
    IMAGE_UPLOAD = "image-upload"
    PDF_UPLOAD = "pdf-upload"
    FILE_UPLOAD = "file-upload"
    DATA_GRID = "data-grid"


@dataclass(frozen=True)
class FieldDescriptor:
    """Leaf input bound to a value path.

    Attributes:
        kind: Input kind, used by the widget registry
        name: Dot path of the value this field edits
        dependencies: Relative names or ``!``-prefixed absolute names
        scope_prefix: Explicit scope prefix; derived from ``name`` when omitted
        visibility: ``(scope, root) -> bool``; field is visible when omitted
        props_logic: ``(scope, root) -> partial props``
        props: Base props (label, placeholder, disabled, ...)
    """
    kind: FieldKind
    name: str
    dependencies: Tuple[str, ...] = ()
    scope_prefix: Optional[str] = None
    visibility: Optional[VisibilityFn] = field(default=None, compare=False)
    props_logic: Optional[PropsFn] = field(default=None, compare=False)
    props: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        try:
            kind = FieldKind(self.kind)
        except ValueError as exc:
            raise SchemaError(f"Unknown field kind {self.kind!r} for '{self.name}'") from exc
        path = FieldPath.parse(self.name)
        if path.is_root:
            raise SchemaError("Field name must not be empty")
        object.__setattr__(self, 'kind', kind)
        object.__setattr__(self, 'dependencies', tuple(self.dependencies))
        object.__setattr__(self, 'props', dict(self.props))
        object.__setattr__(self, '_path', path)
        object.__setattr__(
            self, '_resolution',
            resolve_scope(path, self.dependencies, self.scope_prefix),
        )

    @property
    def path(self) -> FieldPath:
        return self._path

    @property
    def resolution(self) -> ScopeResolution:
        return self._resolution

    @property
    def watch_set(self):
        return self._resolution.watch_set

    def with_prefix(self, prefix: Union[str, FieldPath]) -> 'FieldDescriptor':
        """Re-root this descriptor under ``prefix`` (array item expansion)."""
        return dataclasses.replace(self, name=str(FieldPath.parse(prefix).join(self.name)))


@dataclass(frozen=True)
class SectionLayout:
    title: str
    children: Tuple['SchemaItem', ...] = ()
    description: str = ""
    collapsible: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'children', tuple(self.children))


@dataclass(frozen=True)
class GroupLayout:
    label: str = ""
    children: Tuple['SchemaItem', ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'children', tuple(self.children))


@dataclass(frozen=True)
class WizardStep:
    label: str
    children: Tuple['SchemaItem', ...] = ()
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'children', tuple(self.children))


@dataclass(frozen=True)
class WizardLayout:
    steps: Tuple[WizardStep, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'steps', tuple(self.steps))

    @property
    def children(self) -> Tuple['SchemaItem', ...]:
        return tuple(child for step in self.steps for child in step.children)


@dataclass(frozen=True)
class ArrayLayout:
    """Repeated item schema bound to a list at ``name``.

    ``item_schema`` names are relative to one element: a child named ``title``
    becomes ``<name>.<i>.title`` for element ``i``.
    """
    name: str
    item_schema: Tuple['SchemaItem', ...] = ()
    min_items: int = 0
    max_items: Optional[int] = None

    def __post_init__(self):
        path = FieldPath.parse(self.name)
        if path.is_root:
            raise SchemaError("Array layout name must not be empty")
        if self.max_items is not None and self.max_items < self.min_items:
            raise SchemaError(
                f"Array '{self.name}': max_items {self.max_items} < min_items {self.min_items}"
            )
        object.__setattr__(self, 'item_schema', tuple(self.item_schema))
        object.__setattr__(self, '_path', path)

    @property
    def path(self) -> FieldPath:
        return self._path

    def item_count(self, root: Any) -> int:
        items = get_in(root, self._path)
        if isinstance(items, (list, tuple)):
            return len(items)
        return 0

    def with_prefix(self, prefix: Union[str, FieldPath]) -> 'ArrayLayout':
        return dataclasses.replace(self, name=str(FieldPath.parse(prefix).join(self.name)))


LayoutItem = Union[SectionLayout, GroupLayout, WizardLayout, ArrayLayout]
SchemaItem = Union[FieldDescriptor, LayoutItem]


def _prefixed(item: SchemaItem, prefix: FieldPath) -> SchemaItem:
    if isinstance(item, (FieldDescriptor, ArrayLayout)):
        return item.with_prefix(prefix)
    if isinstance(item, WizardLayout):
        return dataclasses.replace(item, steps=tuple(
            dataclasses.replace(step, children=tuple(_prefixed(c, prefix) for c in step.children))
            for step in item.steps
        ))
    return dataclasses.replace(item, children=tuple(_prefixed(c, prefix) for c in item.children))


def _walk(items, root: Any) -> Iterator[SchemaItem]:
    for item in items:
        yield item
        if isinstance(item, FieldDescriptor):
            continue
        if isinstance(item, ArrayLayout):
            for index in range(item.item_count(root)):
                element_prefix = item.path.join(str(index))
                expanded = [_prefixed(child, element_prefix) for child in item.item_schema]
                yield from _walk(expanded, root)
        elif isinstance(item, (SectionLayout, GroupLayout, WizardLayout)):
            yield from _walk(item.children, root)
        else:
            raise SchemaError(f"Unknown schema item type: {type(item).__name__}")


def walk_fields(items, root: Any = None) -> Iterator[FieldDescriptor]:
    """Depth-first leaf descriptors, with array layouts expanded against ``root``."""
    for item in _walk(items, root):
        if isinstance(item, FieldDescriptor):
            yield item


def iter_array_layouts(items, root: Any = None) -> Iterator[ArrayLayout]:
    """Array layouts reachable for the current ``root``, nested ones included."""
    for item in _walk(items, root):
        if isinstance(item, ArrayLayout):
            yield item
