from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from classipy.adapters.sqlalchemy import start_mappers
from classipy.adapters.sqlalchemy.migrations import upgrade_head
from classipy.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyClassificationUnitOfWork,
    shutdown,
    startup,
)
from classipy.domain.classification import (
    ClassificationService,
    ClassificationStatusPoller,
    ConceptMergeEngine,
    ResultIngestor,
    StatedVsInferredDiffer,
)
from classipy.domain.model import BranchMetadataKey
from tests.support.classifications import BRANCH, CREATED, HEAD
from tests.support.fakes import (
    FakeBranchStore,
    FakeClock,
    FakeConceptStore,
    FakeDeltaExporter,
    FakeReasoner,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # One shared connection so the poller and save threads see the same database.
    engine = create_engine(
        "sqlite+pysqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyClassificationUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyClassificationUnitOfWork:
        return SqlAlchemyClassificationUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(CREATED)


@pytest.fixture
def concept_store() -> FakeConceptStore:
    return FakeConceptStore()


@pytest.fixture
def branch_store(concept_store: FakeConceptStore) -> FakeBranchStore:
    store = FakeBranchStore(concepts=concept_store)
    store.add_branch(
        BRANCH,
        HEAD,
        {
            BranchMetadataKey.PREVIOUS_PACKAGE: "SnomedCT_InternationalRF2_20260101.zip",
            BranchMetadataKey.DEPENDENCY_PACKAGE: "",
        },
    )
    return store


@pytest.fixture
def exporter(tmp_path: Path) -> FakeDeltaExporter:
    return FakeDeltaExporter(directory=tmp_path)


@pytest.fixture
def reasoner() -> FakeReasoner:
    return FakeReasoner()


@pytest.fixture
def poller(
    reasoner: FakeReasoner,
    concept_store: FakeConceptStore,
    sqlite_unit_of_work: Callable[[], SqlAlchemyClassificationUnitOfWork],
    clock: FakeClock,
) -> Iterator[ClassificationStatusPoller]:
    ingestor = ResultIngestor(
        reasoner=reasoner,
        differ=StatedVsInferredDiffer(concept_store, batch_size=2),
        unit_of_work_factory=sqlite_unit_of_work,
        write_batch_size=3,
    )
    status_poller = ClassificationStatusPoller(
        reasoner=reasoner,
        ingestor=ingestor,
        unit_of_work_factory=sqlite_unit_of_work,
        abort_after=timedelta(minutes=45),
        poll_interval=0.01,
        cool_off=0.01,
        clock=clock,
    )
    try:
        yield status_poller
    finally:
        status_poller.stop()


@pytest.fixture
def service(  # noqa: PLR0913
    branch_store: FakeBranchStore,
    concept_store: FakeConceptStore,
    exporter: FakeDeltaExporter,
    reasoner: FakeReasoner,
    sqlite_unit_of_work: Callable[[], SqlAlchemyClassificationUnitOfWork],
    poller: ClassificationStatusPoller,
    clock: FakeClock,
) -> Iterator[ClassificationService]:
    classification_service = ClassificationService(
        branches=branch_store,
        concepts=concept_store,
        exporter=exporter,
        reasoner=reasoner,
        unit_of_work_factory=sqlite_unit_of_work,
        poller=poller,
        merge_engine=ConceptMergeEngine(
            branches=branch_store, concepts=concept_store, window_size=2
        ),
        save_executor=ThreadPoolExecutor(max_workers=2, thread_name_prefix="test-save"),
        clock=clock,
    )
    try:
        yield classification_service
    finally:
        classification_service.shutdown()
