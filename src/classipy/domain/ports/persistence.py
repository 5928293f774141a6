"""Ports for persisting classification jobs and their results."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Iterator

    from classipy.domain.model import (
        Classification,
        ClassificationStatus,
        EquivalentConcepts,
        RelationshipChange,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ClassificationRepository(Repository["Classification"], Protocol):
    def save(self, classification: Classification) -> Classification:
        """Persist the current state of a (possibly detached) record."""
        ...

    def get(self, classification_id: str) -> Classification | None: ...

    def find_by_path(self, path: str, *, limit: int) -> list[Classification]:
        """Return records for a branch, oldest first."""
        ...

    def find_by_statuses(
        self, statuses: Collection[ClassificationStatus]
    ) -> list[Classification]: ...

    def compare_and_set_status(
        self,
        classification_id: str,
        expected: ClassificationStatus,
        new: ClassificationStatus,
    ) -> bool:
        """Atomically move ``expected`` to ``new``; report whether this call won."""
        ...

    def delete_all(self) -> int: ...


@runtime_checkable
class ResultRepository[TResult](Protocol):
    def add_all(self, results: Iterable[TResult]) -> None: ...

    def count(self, classification_id: str) -> int: ...

    def find_page(
        self, classification_id: str, *, offset: int, limit: int
    ) -> tuple[list[TResult], int]:
        """Return one slice of results plus the total for the classification."""
        ...

    def delete_all(self) -> int: ...


@runtime_checkable
class RelationshipChangeRepository(ResultRepository["RelationshipChange"], Protocol):
    def find_by_source(
        self, classification_id: str, source_id: str
    ) -> list[RelationshipChange]: ...

    def stream_for_merge(self, classification_id: str) -> Iterator[RelationshipChange]:
        """Stream changes ordered by source id, group and sort number."""
        ...


@runtime_checkable
class EquivalentConceptsRepository(ResultRepository["EquivalentConcepts"], Protocol):
    """Persistence contract for equivalent concept sets."""


__all__ = [
    "ClassificationRepository",
    "EquivalentConceptsRepository",
    "RelationshipChangeRepository",
    "Repository",
    "ResultRepository",
]
