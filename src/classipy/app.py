"""Application wiring for the classification service."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from classipy.adapters.reasoner import HttpReasonerClient
from classipy.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyClassificationUnitOfWork,
    is_started,
    startup,
)
from classipy.config import ClassificationConfig, get_classification_config
from classipy.domain.classification import (
    ClassificationService,
    ClassificationStatusPoller,
    ConceptMergeEngine,
    ResultIngestor,
    StatedVsInferredDiffer,
    delete_all_classifications,
)
from classipy.domain.ports.unit_of_work import ClassificationUnitOfWork

if TYPE_CHECKING:
    from classipy.domain.model import Classification
    from classipy.domain.ports.branches import BranchStore
    from classipy.domain.ports.concepts import ConceptStore
    from classipy.domain.ports.export import DeltaExporter
    from classipy.domain.ports.reasoner import RemoteReasonerClient

UnitOfWorkFactory = Callable[[], ClassificationUnitOfWork]

log = getLogger(__name__)

LISTING_LIMIT = 1000
SAVE_THREAD_PREFIX = "classification-save"


def _ensure_started(unit_of_work_factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyClassificationUnitOfWork


def build_classification_service(  # noqa: PLR0913
    *,
    branches: BranchStore,
    concepts: ConceptStore,
    exporter: DeltaExporter,
    reasoner: RemoteReasonerClient | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ClassificationConfig | None = None,
) -> ClassificationService:
    """Assemble a service around the given branch, concept and export collaborators.

    The service is returned unstarted; call ``start()`` to recover interrupted
    jobs and launch the status poller.
    """

    effective_uow = _ensure_started(unit_of_work_factory)
    effective_reasoner = reasoner or HttpReasonerClient()
    effective_config = config or get_classification_config()

    differ = StatedVsInferredDiffer(concepts, batch_size=effective_config.lookup_batch_size)
    ingestor = ResultIngestor(
        reasoner=effective_reasoner,
        differ=differ,
        unit_of_work_factory=effective_uow,
        write_batch_size=effective_config.write_batch_size,
    )
    poller = ClassificationStatusPoller(
        reasoner=effective_reasoner,
        ingestor=ingestor,
        unit_of_work_factory=effective_uow,
        abort_after=timedelta(minutes=effective_config.abort_after_minutes),
        poll_interval=effective_config.poll_interval_seconds,
        cool_off=effective_config.cool_off_seconds,
    )
    merge_engine = ConceptMergeEngine(
        branches=branches,
        concepts=concepts,
        window_size=effective_config.merge_window_size,
    )
    log.info(
        "Building classification service: abort_after=%smin, lookup_batch=%s, write_batch=%s",
        effective_config.abort_after_minutes,
        effective_config.lookup_batch_size,
        effective_config.write_batch_size,
    )
    return ClassificationService(
        branches=branches,
        concepts=concepts,
        exporter=exporter,
        reasoner=effective_reasoner,
        unit_of_work_factory=effective_uow,
        poller=poller,
        merge_engine=merge_engine,
        save_executor=ThreadPoolExecutor(
            max_workers=effective_config.save_workers,
            thread_name_prefix=SAVE_THREAD_PREFIX,
        ),
    )


def reset_classifications(*, unit_of_work_factory: UnitOfWorkFactory | None = None) -> int:
    """Delete every stored classification and its results."""

    return delete_all_classifications(_ensure_started(unit_of_work_factory))


def list_classifications(
    path: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    limit: int = LISTING_LIMIT,
) -> list[Classification]:
    """Return the stored classifications of a branch, oldest first, as stored."""

    with _ensure_started(unit_of_work_factory)() as uow:
        return uow.repositories.classifications.find_by_path(path, limit=limit)
