"""Ports onto the concept store and its derived semantic index."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping, Sequence

    from classipy.domain.model import Concept, ConceptMini, SemanticIndexEntry, SemanticLookup
    from classipy.domain.ports.branches import BranchTransaction


@runtime_checkable
class ConceptStore(Protocol):
    def find_concepts(self, path: str, concept_ids: Collection[str]) -> list[Concept]:
        """Bulk-load live concepts; unknown ids are left out of the result."""
        ...

    def find_concept(self, path: str, concept_id: str) -> Concept | None: ...

    def update_within(self, concepts: Sequence[Concept], transaction: BranchTransaction) -> None:
        """Write ``concepts`` through an open transaction."""
        ...

    def find_concept_minis(
        self, path: str, concept_ids: Collection[str]
    ) -> Mapping[str, ConceptMini]: ...

    def find_stated_semantic_entries(
        self, path: str, lookups: Sequence[SemanticLookup]
    ) -> Iterable[SemanticIndexEntry]:
        """Run one disjunctive lookup against the stated semantic index.

        Returns the stated entries of concepts matching at least one lookup. A
        store may return extra entries; callers re-check every entry.
        """
        ...


__all__ = ["ConceptStore"]
