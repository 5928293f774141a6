"""Download a completed job's results and store them.

Parsed relationship changes flow through the differ in lookup-sized batches
and are written in bounded batches, each committed on its own. A failure part
way through leaves earlier batches in place; ingesting again needs a new job.
"""

from __future__ import annotations

from contextlib import closing
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from classipy.domain.batching import BatchWriter, partition

from .archive import ResultArchiveParser, ResultEntryKind, iter_result_entries

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from classipy.domain.model import Classification, EquivalentConcepts, RelationshipChange
    from classipy.domain.ports.reasoner import RemoteReasonerClient
    from classipy.domain.ports.unit_of_work import ClassificationUnitOfWork

    from .differ import StatedVsInferredDiffer

log = getLogger(__name__)

MAX_WRITE_BATCH: Final[int] = 10_000


@dataclass(slots=True, frozen=True)
class IngestionResult:
    relationship_changes: int = 0
    equivalent_concept_sets: int = 0
    inferred_not_stated: int = 0

    @property
    def relationship_changes_found(self) -> bool:
        return self.relationship_changes > 0

    @property
    def equivalent_concepts_found(self) -> bool:
        return self.equivalent_concept_sets > 0


class ResultIngestor:
    def __init__(
        self,
        *,
        reasoner: RemoteReasonerClient,
        differ: StatedVsInferredDiffer,
        unit_of_work_factory: Callable[[], ClassificationUnitOfWork],
        write_batch_size: int = MAX_WRITE_BATCH,
    ) -> None:
        if not 0 < write_batch_size <= MAX_WRITE_BATCH:
            raise ValueError(f"Write batch size must be between 1 and {MAX_WRITE_BATCH}")
        self.reasoner = reasoner
        self.differ = differ
        self.unit_of_work_factory = unit_of_work_factory
        self.write_batch_size = write_batch_size

    def ingest(self, classification: Classification) -> IngestionResult:
        log.info("Downloading remote classification results for %s", classification.id)
        parser = ResultArchiveParser(classification.id)
        changes = 0
        equivalent_sets = 0
        not_stated = 0

        with (
            closing(self.reasoner.download_results(classification.id)) as archive,
            self.unit_of_work_factory() as uow,
        ):
            for kind, lines in iter_result_entries(archive):
                if kind is ResultEntryKind.RELATIONSHIP_DELTA:
                    written, marked = self._store_relationship_changes(
                        uow, classification.path, parser.parse_relationship_changes(lines)
                    )
                    changes += written
                    not_stated += marked
                else:
                    equivalent_sets += self._store_equivalent_concepts(
                        uow, parser.parse_equivalent_concepts(lines)
                    )

        if changes:
            log.info(
                "Saved %s classification relationship changes (%s inferred not stated)",
                changes,
                not_stated,
            )
        if equivalent_sets:
            log.info("Saved %s classification equivalent concept sets", equivalent_sets)
        return IngestionResult(
            relationship_changes=changes,
            equivalent_concept_sets=equivalent_sets,
            inferred_not_stated=not_stated,
        )

    def _store_relationship_changes(
        self,
        uow: ClassificationUnitOfWork,
        path: str,
        changes: Iterable[RelationshipChange],
    ) -> tuple[int, int]:
        def flush(batch: Sequence[RelationshipChange]) -> None:
            uow.repositories.relationship_changes.add_all(batch)
            uow.commit()

        marked = 0
        with BatchWriter(
            flush, batch_size=self.write_batch_size, name="relationship change"
        ) as writer:
            for batch in partition(changes, self.differ.batch_size):
                marked += self.differ.mark_inferred_not_stated(path, batch)
                writer.add_all(batch)
        return writer.written, marked

    def _store_equivalent_concepts(
        self, uow: ClassificationUnitOfWork, equivalent_sets: Iterable[EquivalentConcepts]
    ) -> int:
        def flush(batch: Sequence[EquivalentConcepts]) -> None:
            uow.repositories.equivalent_concepts.add_all(batch)
            uow.commit()

        with BatchWriter(
            flush, batch_size=self.write_batch_size, name="equivalent concepts"
        ) as writer:
            writer.add_all(equivalent_sets)
        return writer.written
