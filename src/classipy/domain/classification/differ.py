"""Mark inferred relationships that the stated view of a concept lacks.

The lookup runs against the stated semantic index, one disjunctive query per
batch of changes rather than one per change. Every entry returned by the
store is re-checked against its own parents and attributes, so the outcome
does not depend on how changes are batched or on the store returning extra
entries.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from classipy.domain.batching import partition
from classipy.domain.model import ISA, ChangeNature, SemanticLookup

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from classipy.domain.model import RelationshipChange, SemanticIndexEntry
    from classipy.domain.ports.concepts import ConceptStore

log = getLogger(__name__)

MAX_LOOKUP_CLAUSES: Final[int] = 900


def participates(change: RelationshipChange) -> bool:
    return change.active and change.change_nature == ChangeNature.INFERRED


def is_stated(entry: SemanticIndexEntry, change: RelationshipChange) -> bool:
    if change.type_id == ISA:
        return change.destination_id in entry.parents
    return change.destination_id in entry.attribute_values(change.type_id)


class StatedVsInferredDiffer:
    def __init__(self, concepts: ConceptStore, *, batch_size: int = MAX_LOOKUP_CLAUSES) -> None:
        if not 0 < batch_size <= MAX_LOOKUP_CLAUSES:
            raise ValueError(f"Lookup batch size must be between 1 and {MAX_LOOKUP_CLAUSES}")
        self.concepts = concepts
        self.batch_size = batch_size

    def mark_inferred_not_stated(self, path: str, changes: Iterable[RelationshipChange]) -> int:
        """Set ``inferred_not_stated`` on qualifying changes; return how many were marked."""

        marked = 0
        candidates = [change for change in changes if participates(change)]
        for batch in partition(candidates, self.batch_size):
            marked += self._mark_batch(path, batch)
        return marked

    def _mark_batch(self, path: str, batch: Sequence[RelationshipChange]) -> int:
        pending: dict[str, list[RelationshipChange]] = {}
        lookups: list[SemanticLookup] = []
        for change in batch:
            lookups.append(
                SemanticLookup(
                    concept_id=change.source_id,
                    type_id=change.type_id,
                    destination_id=change.destination_id,
                )
            )
            pending.setdefault(change.source_id, []).append(change)

        marked = 0
        for entry in self.concepts.find_stated_semantic_entries(path, lookups):
            for change in pending.get(entry.concept_id, ()):
                if change.inferred_not_stated or is_stated(entry, change):
                    continue
                change.inferred_not_stated = True
                marked += 1
        log.debug("Semantic lookup of %s changes marked %s as not stated", len(batch), marked)
        return marked
