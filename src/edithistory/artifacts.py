"""Export artifacts and export failures."""

from dataclasses import dataclass


class ExportError(RuntimeError):
    """Artifact generation failed. No partial artifact is ever returned."""


@dataclass(frozen=True)
class ExportArtifact:
    """Opaque encoded output of an editing session."""
    data: bytes
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)
