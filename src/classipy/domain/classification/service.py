"""Entry point for creating, inspecting and saving classifications."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final

from classipy.domain.model import (
    BranchMetadataKey,
    Classification,
    ClassificationStatus,
    ConceptMini,
)
from classipy.domain.paging import Page, PageRequest, list_to_page
from classipy.domain.ports.export import ExportError
from classipy.domain.ports.reasoner import ReasonerCommunicationError

from .errors import (
    ClassificationNotFoundError,
    ClassificationServiceError,
    IllegalClassificationStateError,
    MissingBranchMetadataError,
)
from .lifecycle import fail, mark_stale_if_branch_moved, transition
from .polling import RESTARTED_MESSAGE

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from concurrent.futures import Executor

    from classipy.domain.model import (
        CallerIdentity,
        Concept,
        EquivalentConcepts,
        RelationshipChange,
    )
    from classipy.domain.paging import SearchAfterPageRequest, SortKey
    from classipy.domain.ports.branches import BranchStore
    from classipy.domain.ports.concepts import ConceptStore
    from classipy.domain.ports.export import DeltaExporter
    from classipy.domain.ports.reasoner import RemoteReasonerClient
    from classipy.domain.ports.unit_of_work import ClassificationUnitOfWork

    from .merge import ConceptMergeEngine
    from .polling import ClassificationStatusPoller

log = getLogger(__name__)

S = ClassificationStatus

MAX_LISTED_CLASSIFICATIONS: Final[int] = 1000
EFFECTIVE_DATE_FORMAT: Final[str] = "%d%m%Y"

MISSING_METADATA_MESSAGE: Final[str] = (
    "Missing branch metadata for previousPackage or dependencyPackage"
)
NOT_COMPLETED_MESSAGE: Final[str] = (
    "Classification status must be COMPLETED in order to save results."
)
STALE_MESSAGE: Final[str] = "Classification is stale."
NO_RESULTS_MESSAGE: Final[str] = "This classification has no results yet."
CREATE_FAILED_MESSAGE: Final[str] = "Failed to create classification."
SCHEDULE_FAILED_MESSAGE: Final[str] = "Failed to schedule saving of classification results."


def _utcnow() -> datetime:
    return datetime.now(UTC)


def delete_all_classifications(
    unit_of_work_factory: Callable[[], ClassificationUnitOfWork],
) -> int:
    """Remove every classification record and its results; return the job count."""

    with unit_of_work_factory() as uow:
        changes = uow.repositories.relationship_changes.delete_all()
        sets = uow.repositories.equivalent_concepts.delete_all()
        jobs = uow.repositories.classifications.delete_all()
        uow.commit()
    log.info(
        "Deleted %s classifications, %s relationship changes and %s equivalent sets",
        jobs,
        changes,
        sets,
    )
    return jobs


def creation_order_key(classification: Classification) -> SortKey:
    """Sort key for search-after paging over a classification listing."""

    return (classification.creation_date, classification.id)


@dataclass(slots=True)
class EquivalentConceptsView:
    """One equivalent set with display labels for each member."""

    concepts: list[ConceptMini]


class ClassificationService:
    def __init__(  # noqa: PLR0913
        self,
        *,
        branches: BranchStore,
        concepts: ConceptStore,
        exporter: DeltaExporter,
        reasoner: RemoteReasonerClient,
        unit_of_work_factory: Callable[[], ClassificationUnitOfWork],
        poller: ClassificationStatusPoller,
        merge_engine: ConceptMergeEngine,
        save_executor: Executor,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.branches = branches
        self.concepts = concepts
        self.exporter = exporter
        self.reasoner = reasoner
        self.unit_of_work_factory = unit_of_work_factory
        self.poller = poller
        self.merge_engine = merge_engine
        self._save_executor = save_executor
        self._clock = clock
        self._save_lock = threading.Lock()

    # lifecycle

    def start(self) -> None:
        self.recover_interrupted()
        self.poller.start()

    def shutdown(self) -> None:
        self.poller.stop()
        self._save_executor.shutdown(wait=True)

    def recover_interrupted(self) -> int:
        """Fail jobs left in flight by a previous process; return how many."""

        now = self._clock()
        with self.unit_of_work_factory() as uow:
            repository = uow.repositories.classifications
            interrupted = repository.find_by_statuses((S.SCHEDULED, S.RUNNING))
            for classification in interrupted:
                fail(classification, RESTARTED_MESSAGE, now=now)
                repository.save(classification)
            uow.commit()
        log.info("%s classifications marked as failed after restart", len(interrupted))
        return len(interrupted)

    # creation

    def create_classification(
        self, path: str, reasoner_id: str, identity: CallerIdentity
    ) -> Classification:
        branch_head = self.branches.get_branch_head(path)
        metadata = self.branches.get_branch_metadata(path, inherited=True)
        previous_package = metadata.get(BranchMetadataKey.PREVIOUS_PACKAGE) or None
        dependency_package = metadata.get(BranchMetadataKey.DEPENDENCY_PACKAGE) or None
        if previous_package is None and dependency_package is None:
            raise MissingBranchMetadataError(MISSING_METADATA_MESSAGE)

        now = self._clock()
        try:
            delta_archive = self.exporter.export_delta(path, now.strftime(EFFECTIVE_DATE_FORMAT))
            job_id = self.reasoner.submit(
                previous_package=previous_package,
                dependency_package=dependency_package,
                delta_archive=delta_archive,
                path=path,
                reasoner_id=reasoner_id,
            )
        except (ExportError, ReasonerCommunicationError) as exc:
            log.exception("Failed to create classification on %s", path)
            raise ClassificationServiceError(CREATE_FAILED_MESSAGE) from exc

        classification = Classification(
            id=job_id,
            path=path,
            reasoner_id=reasoner_id,
            user_id=identity.username,
            status=S.SCHEDULED,
            creation_date=now,
            last_commit_date=branch_head,
        )
        with self.unit_of_work_factory() as uow:
            uow.repositories.classifications.add(classification)
            uow.commit()
        self.poller.track(classification)
        log.info("Created classification %s on %s for %s", job_id, path, identity.username)
        return classification

    # reads

    def find_classifications(
        self,
        path: str,
        request: PageRequest | SearchAfterPageRequest[Classification] | None = None,
    ) -> Page[Classification]:
        branch_head = self.branches.get_branch_head(path)
        with self.unit_of_work_factory() as uow:
            classifications = uow.repositories.classifications.find_by_path(
                path, limit=MAX_LISTED_CLASSIFICATIONS
            )
            self._refresh_staleness(uow, classifications, branch_head)
        return list_to_page(classifications, request or PageRequest())

    def find_classification(self, path: str, classification_id: str) -> Classification:
        branch_head = self.branches.get_branch_head(path)
        with self.unit_of_work_factory() as uow:
            classification = uow.repositories.classifications.get(classification_id)
            if classification is None or classification.path != path:
                raise ClassificationNotFoundError(
                    f"Classification {classification_id} not found on branch {path}"
                )
            self._refresh_staleness(uow, [classification], branch_head)
        return classification

    def get_relationship_changes(
        self, path: str, classification_id: str, request: PageRequest | None = None
    ) -> Page[RelationshipChange]:
        self._require_results(path, classification_id)
        request = request or PageRequest()
        with self.unit_of_work_factory() as uow:
            changes, total = uow.repositories.relationship_changes.find_page(
                classification_id, offset=request.offset, limit=request.size
            )
        self._join_concept_minis(path, changes)
        return Page(items=changes, total=total, offset=request.offset)

    def get_equivalent_concepts(
        self, path: str, classification_id: str, request: PageRequest | None = None
    ) -> Page[EquivalentConceptsView]:
        self._require_results(path, classification_id)
        request = request or PageRequest()
        with self.unit_of_work_factory() as uow:
            sets, total = uow.repositories.equivalent_concepts.find_page(
                classification_id, offset=request.offset, limit=request.size
            )
        minis = self.concepts.find_concept_minis(
            path, {concept_id for equivalent in sets for concept_id in equivalent.concept_ids}
        )
        page: Page[EquivalentConcepts] = Page(items=sets, total=total, offset=request.offset)
        return page.map(
            lambda equivalent: EquivalentConceptsView(
                concepts=[
                    minis.get(concept_id) or ConceptMini(concept_id)
                    for concept_id in sorted(equivalent.concept_ids)
                ]
            )
        )

    def get_concept_preview(self, path: str, classification_id: str, concept_id: str) -> Concept:
        self._require_results(path, classification_id)
        concept = self.concepts.find_concept(path, concept_id)
        if concept is None:
            raise ClassificationNotFoundError(f"Concept {concept_id} not found on branch {path}")
        with self.unit_of_work_factory() as uow:
            changes = uow.repositories.relationship_changes.find_by_source(
                classification_id, concept_id
            )
        self._join_concept_minis(path, changes)
        return self.merge_engine.preview(concept, changes)

    # saving

    def save_results_to_branch(
        self, path: str, classification_id: str, identity: CallerIdentity
    ) -> Future[Classification]:
        """Claim the job for saving and merge its changes in the background.

        Raises :class:`IllegalClassificationStateError` right away when the job
        cannot be saved. The returned future resolves to the job in its final
        state.
        """

        classification = self._claim_for_save(path, classification_id)
        if classification.status == S.SAVED:
            done: Future[Classification] = Future()
            done.set_result(classification)
            return done
        try:
            return self._save_executor.submit(self._save, classification, identity)
        except RuntimeError as exc:
            log.exception("Could not schedule saving of classification %s", classification_id)
            transition(classification, S.SAVE_FAILED)
            classification.error_message = SCHEDULE_FAILED_MESSAGE
            self._persist(classification)
            raise ClassificationServiceError(SCHEDULE_FAILED_MESSAGE) from exc

    def _claim_for_save(self, path: str, classification_id: str) -> Classification:
        with self._save_lock:
            classification = self.find_classification(path, classification_id)
            if classification.status == S.STALE:
                raise IllegalClassificationStateError(STALE_MESSAGE)
            if classification.status != S.COMPLETED:
                raise IllegalClassificationStateError(NOT_COMPLETED_MESSAGE)

            target = (
                S.SAVING_IN_PROGRESS
                if classification.inferred_relationship_changes_found
                else S.SAVED
            )
            with self.unit_of_work_factory() as uow:
                claimed = uow.repositories.classifications.compare_and_set_status(
                    classification_id, S.COMPLETED, target
                )
                uow.commit()
            if not claimed:
                raise IllegalClassificationStateError(NOT_COMPLETED_MESSAGE)
            transition(classification, target)

            if target == S.SAVED:
                classification.save_date = self._clock()
                self._persist(classification)
                log.info(
                    "Classification %s has no relationship changes to save", classification_id
                )
            return classification

    def _save(self, classification: Classification, identity: CallerIdentity) -> Classification:
        try:
            with self.unit_of_work_factory() as uow:
                changes = uow.repositories.relationship_changes.stream_for_merge(classification.id)
                self.merge_engine.merge(classification, changes, identity)
        except Exception as exc:
            log.exception(
                "Failed to save classification %s to %s", classification.id, classification.path
            )
            transition(classification, S.SAVE_FAILED)
            classification.error_message = str(exc) or type(exc).__name__
        else:
            transition(classification, S.SAVED)
            classification.save_date = self._clock()
        self._persist(classification)
        return classification

    # administration

    def delete_all(self) -> int:
        self.poller.clear()
        return delete_all_classifications(self.unit_of_work_factory)

    # helpers

    def _require_results(self, path: str, classification_id: str) -> Classification:
        classification = self.find_classification(path, classification_id)
        if not classification.status.results_available:
            raise IllegalClassificationStateError(NO_RESULTS_MESSAGE)
        return classification

    def _refresh_staleness(
        self,
        uow: ClassificationUnitOfWork,
        classifications: Iterable[Classification],
        branch_head: datetime,
    ) -> None:
        changed = False
        for classification in classifications:
            if mark_stale_if_branch_moved(classification, branch_head):
                uow.repositories.classifications.save(classification)
                changed = True
        if changed:
            uow.commit()

    def _join_concept_minis(self, path: str, changes: Iterable[RelationshipChange]) -> None:
        changes = list(changes)
        concept_ids: set[str] = set()
        for change in changes:
            concept_ids.update((change.source_id, change.destination_id, change.type_id))
        if not concept_ids:
            return
        minis = self.concepts.find_concept_minis(path, concept_ids)
        for change in changes:
            change.source = minis.get(change.source_id) or ConceptMini(change.source_id)
            change.destination = minis.get(change.destination_id) or ConceptMini(
                change.destination_id
            )
            change.type = minis.get(change.type_id) or ConceptMini(change.type_id)

    def _persist(self, classification: Classification) -> None:
        with self.unit_of_work_factory() as uow:
            uow.repositories.classifications.save(classification)
            uow.commit()
