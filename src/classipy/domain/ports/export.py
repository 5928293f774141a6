"""Port for exporting a branch's pending changes as an RF2 delta archive."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path


class ExportError(RuntimeError):
    """Raised when a delta archive cannot be produced."""


@runtime_checkable
class DeltaExporter(Protocol):
    def export_delta(self, path: str, effective_date: str) -> Path:
        """Write a classification delta archive for ``path`` and return its location."""
        ...


__all__ = ["DeltaExporter", "ExportError"]
