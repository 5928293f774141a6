from __future__ import annotations

import threading
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from classipy.domain.classification import (
    ClassificationNotFoundError,
    ClassificationService,
    ClassificationServiceError,
    IllegalClassificationStateError,
    MissingBranchMetadataError,
    creation_order_key,
)
from classipy.domain.model import (
    BranchMetadataKey,
    CallerIdentity,
    ClassificationStatus,
    ConceptMini,
)
from classipy.domain.paging import PageRequest, SearchAfterPageRequest
from classipy.domain.ports.branches import BranchNotFoundError
from classipy.domain.ports.export import ExportError
from tests.support.archives import build_result_archive, equivalent_rows, relationship_row
from tests.support.classifications import (
    BRANCH,
    HEAD,
    make_classification,
    make_concept,
    make_relationship,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from classipy.adapters.sqlalchemy.unit_of_work import SqlAlchemyClassificationUnitOfWork
    from classipy.domain.model import Classification
    from tests.support.fakes import (
        FakeBranchStore,
        FakeClock,
        FakeConceptStore,
        FakeDeltaExporter,
        FakeReasoner,
    )

S = ClassificationStatus
ALICE = CallerIdentity(username="alice", roles=frozenset({"AUTHOR"}))
ELK = "org.semanticweb.elk.owlapi.ElkReasonerFactory"


def _complete_with(
    service: ClassificationService,
    reasoner: FakeReasoner,
    archive: bytes,
) -> Classification:
    classification = service.create_classification(BRANCH, ELK, ALICE)
    reasoner.complete(classification.id, archive)
    service.poller.sweep()
    return service.find_classification(BRANCH, classification.id)


@pytest.fixture
def populated(concept_store: FakeConceptStore) -> FakeConceptStore:
    concept_store.put(BRANCH, make_concept("100", make_relationship("1", "200")))
    concept_store.put(BRANCH, make_concept("101", make_relationship("2", "200", active=False)))
    concept_store.put(BRANCH, make_concept("102", make_relationship("3", "200")))
    concept_store.minis.update(
        {
            "100": ConceptMini("100", pt="Heart disease"),
            "200": ConceptMini("200", pt="Disease"),
            "300": ConceptMini("300", pt="Disorder of thorax"),
        }
    )
    concept_store.set_stated("100", parents=["200"])
    return concept_store


@pytest.fixture
def results_archive() -> bytes:
    return build_result_archive(
        relationships=[
            relationship_row("100", "300"),
            relationship_row("101", "200", relationship_id="2", group=1),
            relationship_row("102", "200", relationship_id="3", active=False),
            relationship_row("102", "300"),
        ],
        equivalents=equivalent_rows({"set-1": ["100", "555"]}),
    )


# creation


def test_create_schedules_job_and_tracks_it(
    service: ClassificationService,
    reasoner: FakeReasoner,
    exporter: FakeDeltaExporter,
    clock: FakeClock,
) -> None:
    classification = service.create_classification(BRANCH, ELK, ALICE)

    assert classification.status is S.SCHEDULED
    assert classification.user_id == "alice"
    assert classification.last_commit_date == HEAD
    assert classification.creation_date == clock.now
    assert exporter.exports == [(BRANCH, "01032026")]
    (submission,) = reasoner.submissions
    assert submission.job_id == classification.id
    assert submission.previous_package == "SnomedCT_InternationalRF2_20260101.zip"
    assert submission.dependency_package is None
    assert submission.reasoner_id == ELK
    assert service.poller.tracked_ids() == {classification.id}
    assert service.find_classification(BRANCH, classification.id).status is S.SCHEDULED


def test_create_requires_package_metadata(
    service: ClassificationService,
    branch_store: FakeBranchStore,
    reasoner: FakeReasoner,
) -> None:
    branch_store.metadata[BRANCH] = {BranchMetadataKey.DEPENDENCY_PACKAGE: ""}

    with pytest.raises(MissingBranchMetadataError, match="previousPackage or dependencyPackage"):
        service.create_classification(BRANCH, ELK, ALICE)

    assert reasoner.submissions == []
    assert service.find_classifications(BRANCH).total == 0


def test_create_on_unknown_branch(service: ClassificationService) -> None:
    with pytest.raises(BranchNotFoundError):
        service.create_classification("MAIN/NOPE", ELK, ALICE)


def test_create_wraps_export_and_submission_failures(
    service: ClassificationService,
    exporter: FakeDeltaExporter,
    reasoner: FakeReasoner,
) -> None:
    exporter.error = ExportError("disk full")
    with pytest.raises(ClassificationServiceError, match="Failed to create classification."):
        service.create_classification(BRANCH, ELK, ALICE)

    exporter.error = None
    reasoner.unreachable = True
    with pytest.raises(ClassificationServiceError):
        service.create_classification(BRANCH, ELK, ALICE)

    assert service.find_classifications(BRANCH).total == 0


# reads


def test_listing_is_oldest_first_and_paged(
    service: ClassificationService, clock: FakeClock
) -> None:
    created = []
    for _ in range(3):
        created.append(service.create_classification(BRANCH, ELK, ALICE).id)
        clock.advance(timedelta(minutes=1))

    first = service.find_classifications(BRANCH, PageRequest(page=0, size=2))
    second = service.find_classifications(BRANCH, PageRequest(page=1, size=2))

    assert [item.id for item in first.items] == created[:2]
    assert [item.id for item in second.items] == created[2:]
    assert first.total == 3


def test_listing_supports_search_after(service: ClassificationService, clock: FakeClock) -> None:
    created = []
    for _ in range(3):
        created.append(service.create_classification(BRANCH, ELK, ALICE).id)
        clock.advance(timedelta(minutes=1))

    request = SearchAfterPageRequest(size=2, sort_key=creation_order_key)
    first = service.find_classifications(BRANCH, request)
    second = service.find_classifications(BRANCH, request.next_request(first))

    assert [item.id for item in first.items] == created[:2]
    assert [item.id for item in second.items] == created[2:]


def test_find_unknown_or_foreign_classification(
    service: ClassificationService, branch_store: FakeBranchStore
) -> None:
    job_id = service.create_classification(BRANCH, ELK, ALICE).id

    with pytest.raises(ClassificationNotFoundError):
        service.find_classification(BRANCH, "nope")

    branch_store.add_branch("MAIN/OTHER", HEAD)
    with pytest.raises(ClassificationNotFoundError):
        service.find_classification("MAIN/OTHER", job_id)


def test_completed_job_turns_stale_when_branch_moves(
    service: ClassificationService,
    reasoner: FakeReasoner,
    branch_store: FakeBranchStore,
    results_archive: bytes,
) -> None:
    completed = _complete_with(service, reasoner, results_archive)
    assert completed.status is S.COMPLETED

    branch_store.advance_head(BRANCH)

    listed = service.find_classifications(BRANCH).items
    assert [item.status for item in listed] == [S.STALE]
    assert service.find_classification(BRANCH, completed.id).status is S.STALE


def test_results_require_completed_job(service: ClassificationService) -> None:
    job_id = service.create_classification(BRANCH, ELK, ALICE).id

    with pytest.raises(IllegalClassificationStateError, match="no results yet"):
        service.get_relationship_changes(BRANCH, job_id)
    with pytest.raises(IllegalClassificationStateError, match="no results yet"):
        service.get_equivalent_concepts(BRANCH, job_id)


def test_relationship_changes_are_paged_and_labelled(
    service: ClassificationService,
    reasoner: FakeReasoner,
    populated: FakeConceptStore,
    results_archive: bytes,
) -> None:
    completed = _complete_with(service, reasoner, results_archive)

    page = service.get_relationship_changes(BRANCH, completed.id, PageRequest(page=0, size=3))

    assert page.total == 4
    assert [change.sort_number for change in page.items] == [0, 1, 2]
    first = page.items[0]
    assert first.source == ConceptMini("100", pt="Heart disease")
    assert first.destination == ConceptMini("300", pt="Disorder of thorax")
    assert first.inferred_not_stated
    assert page.items[1].source == ConceptMini("101")


def test_equivalent_concepts_are_labelled(
    service: ClassificationService,
    reasoner: FakeReasoner,
    populated: FakeConceptStore,
    results_archive: bytes,
) -> None:
    completed = _complete_with(service, reasoner, results_archive)

    page = service.get_equivalent_concepts(BRANCH, completed.id)

    assert page.total == 1
    assert page.items[0].concepts == [
        ConceptMini("100", pt="Heart disease"),
        ConceptMini("555"),
    ]


def test_concept_preview_applies_changes_to_a_copy(
    service: ClassificationService,
    reasoner: FakeReasoner,
    populated: FakeConceptStore,
    branch_store: FakeBranchStore,
    results_archive: bytes,
) -> None:
    completed = _complete_with(service, reasoner, results_archive)

    preview = service.get_concept_preview(BRANCH, completed.id, "102")

    assert [rel.destination_id for rel in preview.relationships] == ["300"]
    assert preview.relationships[0].target == ConceptMini("300", pt="Disorder of thorax")
    assert len(populated.get(BRANCH, "102").relationships) == 1
    assert branch_store.transactions == []


def test_concept_preview_for_unknown_concept(
    service: ClassificationService,
    reasoner: FakeReasoner,
    results_archive: bytes,
) -> None:
    completed = _complete_with(service, reasoner, results_archive)

    with pytest.raises(ClassificationNotFoundError):
        service.get_concept_preview(BRANCH, completed.id, "999")


# saving


def test_save_applies_changes_in_one_commit(
    service: ClassificationService,
    reasoner: FakeReasoner,
    populated: FakeConceptStore,
    branch_store: FakeBranchStore,
    results_archive: bytes,
    clock: FakeClock,
) -> None:
    completed = _complete_with(service, reasoner, results_archive)
    clock.advance(timedelta(minutes=2))

    future = service.save_results_to_branch(BRANCH, completed.id, ALICE)
    saved = future.result(timeout=5)

    assert saved.status is S.SAVED
    persisted = service.find_classification(BRANCH, completed.id)
    assert persisted.status is S.SAVED
    assert persisted.save_date == clock.now
    (transaction,) = branch_store.transactions
    assert transaction.state == "committed"
    assert transaction.identity is ALICE
    assert transaction.lock_reason == f"Saving classification {completed.id}"

    heart = populated.get(BRANCH, "100")
    assert sorted(rel.destination_id for rel in heart.relationships) == ["200", "300"]
    reactivated = populated.get(BRANCH, "101").get_relationship("2")
    assert reactivated is not None
    assert reactivated.active
    assert reactivated.group == 1
    assert [rel.destination_id for rel in populated.get(BRANCH, "102").relationships] == ["300"]


def test_save_without_changes_goes_straight_to_saved(
    service: ClassificationService,
    reasoner: FakeReasoner,
    branch_store: FakeBranchStore,
) -> None:
    completed = _complete_with(service, reasoner, build_result_archive(relationships=[]))

    saved = service.save_results_to_branch(BRANCH, completed.id, ALICE).result(timeout=5)

    assert saved.status is S.SAVED
    assert branch_store.transactions == []


def test_inconsistent_change_marks_save_failed_and_aborts(
    service: ClassificationService,
    reasoner: FakeReasoner,
    populated: FakeConceptStore,
    branch_store: FakeBranchStore,
) -> None:
    archive = build_result_archive(
        relationships=[
            relationship_row("100", "300"),
            relationship_row("101", "200", relationship_id="does-not-exist"),
        ]
    )
    completed = _complete_with(service, reasoner, archive)

    result = service.save_results_to_branch(BRANCH, completed.id, ALICE).result(timeout=5)

    assert result.status is S.SAVE_FAILED
    persisted = service.find_classification(BRANCH, completed.id)
    assert persisted.status is S.SAVE_FAILED
    assert persisted.error_message is not None
    assert "does-not-exist" in persisted.error_message
    (transaction,) = branch_store.transactions
    assert transaction.state == "aborted"
    assert len(populated.get(BRANCH, "100").relationships) == 1


def test_second_save_is_rejected_synchronously(
    service: ClassificationService,
    reasoner: FakeReasoner,
    populated: FakeConceptStore,
    results_archive: bytes,
) -> None:
    completed = _complete_with(service, reasoner, results_archive)
    populated.gate = threading.Event()

    future = service.save_results_to_branch(BRANCH, completed.id, ALICE)
    with pytest.raises(IllegalClassificationStateError, match="must be COMPLETED"):
        service.save_results_to_branch(BRANCH, completed.id, ALICE)
    populated.gate.set()

    assert future.result(timeout=5).status is S.SAVED
    with pytest.raises(IllegalClassificationStateError):
        service.save_results_to_branch(BRANCH, completed.id, ALICE)


def test_stale_job_cannot_be_saved(
    service: ClassificationService,
    reasoner: FakeReasoner,
    branch_store: FakeBranchStore,
    results_archive: bytes,
) -> None:
    completed = _complete_with(service, reasoner, results_archive)
    branch_store.advance_head(BRANCH)

    with pytest.raises(IllegalClassificationStateError, match="stale"):
        service.save_results_to_branch(BRANCH, completed.id, ALICE)

    assert branch_store.transactions == []
    assert service.find_classification(BRANCH, completed.id).status is S.STALE


def test_running_job_cannot_be_saved(service: ClassificationService) -> None:
    job_id = service.create_classification(BRANCH, ELK, ALICE).id

    with pytest.raises(IllegalClassificationStateError, match="must be COMPLETED"):
        service.save_results_to_branch(BRANCH, job_id, ALICE)


# lifecycle and administration


def test_restart_fails_jobs_left_in_flight(
    service: ClassificationService,
    sqlite_unit_of_work: Callable[[], SqlAlchemyClassificationUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.classifications.add(make_classification("job-a"))
        uow.repositories.classifications.add(
            make_classification("job-b", status=S.RUNNING)
        )
        uow.repositories.classifications.add(
            make_classification("job-c", status=S.COMPLETED)
        )
        uow.commit()

    assert service.recover_interrupted() == 2

    statuses = {item.id: item for item in service.find_classifications(BRANCH).items}
    assert statuses["job-a"].status is S.FAILED
    assert statuses["job-a"].error_message == "Termserver restarted."
    assert statuses["job-b"].status is S.FAILED
    assert statuses["job-c"].status is S.COMPLETED


def test_start_recovers_then_polls(
    service: ClassificationService,
    sqlite_unit_of_work: Callable[[], SqlAlchemyClassificationUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.classifications.add(make_classification("job-a"))
        uow.commit()

    service.start()
    try:
        assert service.poller.is_running
    finally:
        service.poller.stop()

    assert service.find_classification(BRANCH, "job-a").status is S.FAILED


def test_delete_all_clears_records_and_tracking(
    service: ClassificationService,
    reasoner: FakeReasoner,
    results_archive: bytes,
) -> None:
    _complete_with(service, reasoner, results_archive)
    service.create_classification(BRANCH, ELK, ALICE)

    assert service.delete_all() == 2

    assert service.find_classifications(BRANCH).total == 0
    assert service.poller.tracked_ids() == frozenset()


def test_save_that_cannot_be_scheduled_is_marked_failed(
    service: ClassificationService,
    reasoner: FakeReasoner,
    populated: FakeConceptStore,
    results_archive: bytes,
) -> None:
    completed = _complete_with(service, reasoner, results_archive)
    service.shutdown()

    with pytest.raises(ClassificationServiceError, match="Failed to schedule saving"):
        service.save_results_to_branch(BRANCH, completed.id, ALICE)

    persisted = service.find_classification(BRANCH, completed.id)
    assert persisted.status is S.SAVE_FAILED
    assert persisted.error_message == "Failed to schedule saving of classification results."


def test_all_change_kinds_on_one_concept(
    service: ClassificationService,
    reasoner: FakeReasoner,
    concept_store: FakeConceptStore,
) -> None:
    concept_store.put(
        BRANCH,
        make_concept(
            "110",
            make_relationship("1", "200", active=False),
            make_relationship("5", "400"),
        ),
    )
    archive = build_result_archive(
        relationships=[
            relationship_row("110", "300"),
            relationship_row("110", "301", group=1),
            relationship_row("110", "200", relationship_id="1", group=2),
            relationship_row("110", "400", relationship_id="5", active=False),
        ]
    )
    completed = _complete_with(service, reasoner, archive)

    saved = service.save_results_to_branch(BRANCH, completed.id, ALICE).result(timeout=5)

    assert saved.status is S.SAVED
    relationships = concept_store.get(BRANCH, "110").relationships
    assert sorted((rel.destination_id, rel.group, rel.active) for rel in relationships) == [
        ("200", 2, True),
        ("300", 0, True),
        ("301", 1, True),
    ]
    assert [rel.relationship_id for rel in relationships].count(None) == 2
    assert concept_store.updates == [["110"]]
