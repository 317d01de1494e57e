"""
Structured dot paths into a nested value tree.

A path is parsed once into an ordered tuple of segments. Numeric segments
address sequence items (``items.2.name``), everything else addresses mapping
keys. The empty string is the root path.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Tuple, Union

from formstate.errors import SchemaError

SEPARATOR = "."

MISSING = object()  # Distinguishes "absent" from a stored None


@dataclass(frozen=True)
class FieldPath:
    """Immutable path made of segments. ``FieldPath(())`` is the root."""
    segments: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, raw: Union[str, 'FieldPath']) -> 'FieldPath':
        """Parse a dot-separated path.

        Raises:
            SchemaError: On empty segments (``a..b``), leading or trailing
                separators, or non-string input.
        """
        if isinstance(raw, FieldPath):
            return raw
        if not isinstance(raw, str):
            raise SchemaError(f"Path must be a string, got {type(raw).__name__}")
        if raw == "":
            return ROOT
        segments = tuple(raw.split(SEPARATOR))
        if any(segment == "" for segment in segments):
            raise SchemaError(f"Malformed path {raw!r}: empty segment")
        return cls(segments)

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def parent(self) -> 'FieldPath':
        """Path with the last segment removed. The root is its own parent."""
        return FieldPath(self.segments[:-1])

    @property
    def name(self) -> str:
        return self.segments[-1] if self.segments else ""

    def join(self, other: Union[str, 'FieldPath']) -> 'FieldPath':
        return FieldPath(self.segments + FieldPath.parse(other).segments)

    def is_prefix_of(self, other: 'FieldPath') -> bool:
        n = len(self.segments)
        return other.segments[:n] == self.segments

    def overlaps(self, other: 'FieldPath') -> bool:
        """True if a change at one path can affect the value at the other."""
        return self.is_prefix_of(other) or other.is_prefix_of(self)

    def __str__(self) -> str:
        return SEPARATOR.join(self.segments)

    def __repr__(self) -> str:
        return f"FieldPath({str(self)!r})"


ROOT = FieldPath(())


def _step(node: Any, segment: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(segment, MISSING)
    if isinstance(node, Sequence) and not isinstance(node, (str, bytes)):
        if not segment.isdigit():
            return MISSING
        index = int(segment)
        return node[index] if index < len(node) else MISSING
    return MISSING


def get_in(root: Any, path: Union[str, FieldPath], default: Any = None) -> Any:
    """Read the value at ``path``, or ``default`` if any step is absent."""
    node = root
    for segment in FieldPath.parse(path).segments:
        node = _step(node, segment)
        if node is MISSING:
            return default
    return node


def assoc_in(root: Any, path: Union[str, FieldPath], value: Any) -> Any:
    """Return a copy of ``root`` with ``value`` stored at ``path``.

    Only the containers along the path are copied; sibling branches are shared
    with the original tree, so trees handed out earlier are never mutated.
    """
    segments = FieldPath.parse(path).segments
    if not segments:
        return value
    head, rest = segments[0], FieldPath(segments[1:])

    if isinstance(root, list):
        if not head.isdigit():
            raise KeyError(f"Cannot address list with non-numeric segment {head!r}")
        index = int(head)
        if index > len(root):
            raise IndexError(f"Index {index} out of range for list of length {len(root)}")
        copied = list(root)
        child = copied[index] if index < len(copied) else None
        new_child = assoc_in(child, rest, value) if rest.segments else value
        if index == len(copied):
            copied.append(new_child)
        else:
            copied[index] = new_child
        return copied

    copied = dict(root) if isinstance(root, Mapping) else {}
    child = copied.get(head)
    copied[head] = assoc_in(child, rest, value) if rest.segments else value
    return copied
