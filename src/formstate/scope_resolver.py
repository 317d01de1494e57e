"""
Scope resolution for field-level conditional logic.

Given a field's path and its declared dependency specs, computes:

- the scope prefix (the subtree the field's logic sees as ``scope``)
- the watch set (the absolute paths whose changes require re-evaluation)

Dependency spec syntax:
    "active"          relative: resolved against the scope prefix
    "address.city"    relative, nested
    "!settings.mode"  absolute: resolved against the root

Relative dependencies are watched only in their scope-qualified form. Absolute
paths enter the watch set only through the ``!`` prefix.

This module is pure: no store access, no side effects. Resolution happens once
when a descriptor is constructed, so malformed paths fail at schema-construction
time.
"""

from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Optional, Tuple, Union

from formstate.errors import SchemaError
from formstate.paths import FieldPath, ROOT, get_in

ABSOLUTE_MARKER = "!"


@dataclass(frozen=True)
class DependencySpec:
    """A parsed dependency declaration."""
    path: FieldPath
    absolute: bool

    @classmethod
    def parse(cls, raw: str) -> 'DependencySpec':
        if not isinstance(raw, str):
            raise SchemaError(f"Dependency must be a string, got {type(raw).__name__}")
        absolute = raw.startswith(ABSOLUTE_MARKER)
        body = raw[len(ABSOLUTE_MARKER):] if absolute else raw
        if body == "":
            raise SchemaError(f"Empty dependency spec {raw!r}")
        return cls(path=FieldPath.parse(body), absolute=absolute)

    def watch_path(self, scope_prefix: FieldPath) -> FieldPath:
        if self.absolute:
            return self.path
        return scope_prefix.join(self.path)


@dataclass(frozen=True)
class ScopeResolution:
    """Result of resolving a field's scope and dependencies."""
    scope_prefix: FieldPath
    watch_set: FrozenSet[FieldPath]
    dependencies: Tuple[DependencySpec, ...] = ()

    def scope_value(self, root: Any) -> Any:
        """Subtree at the scope prefix, or ``root`` if the prefix is empty or absent."""
        if self.scope_prefix.is_root:
            return root
        value = get_in(root, self.scope_prefix)
        return root if value is None else value

    def watches(self, changed: FieldPath) -> bool:
        return any(path.overlaps(changed) for path in self.watch_set)


def derive_scope_prefix(
    path: FieldPath,
    explicit_scope_prefix: Optional[Union[str, FieldPath]] = None,
) -> FieldPath:
    """Explicit prefix if given, else the path without its last segment."""
    if explicit_scope_prefix:
        return FieldPath.parse(explicit_scope_prefix)
    return path.parent if not path.is_root else ROOT


def resolve_scope(
    path: Union[str, FieldPath],
    dependencies: Iterable[str] = (),
    explicit_scope_prefix: Optional[Union[str, FieldPath]] = None,
) -> ScopeResolution:
    """Compute scope prefix and watch set for a field.

    Example:
        >>> r = resolve_scope("items.2.name", ["active", "!mode"])
        >>> str(r.scope_prefix)
        'items.2'
        >>> sorted(str(p) for p in r.watch_set)
        ['items.2.active', 'mode']
    """
    field_path = FieldPath.parse(path)
    scope_prefix = derive_scope_prefix(field_path, explicit_scope_prefix)
    specs = tuple(DependencySpec.parse(dep) for dep in dependencies)
    watch_set = frozenset(spec.watch_path(scope_prefix) for spec in specs)
    return ScopeResolution(scope_prefix=scope_prefix, watch_set=watch_set, dependencies=specs)
