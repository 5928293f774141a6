"""Background reconciliation of in-flight jobs with the remote reasoner.

One daemon thread sweeps the set of tracked jobs. A sweep asks the reasoner
for each job's status, persists every change and ingests the results of jobs
that complete. Jobs stop being tracked once they leave SCHEDULED / RUNNING.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final

from classipy.domain.model import ClassificationStatus
from classipy.domain.ports.reasoner import ReasonerCommunicationError

from .lifecycle import can_transition, fail, transition

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import timedelta

    from classipy.domain.model import Classification
    from classipy.domain.ports.reasoner import ReasonerStatus, RemoteReasonerClient
    from classipy.domain.ports.unit_of_work import ClassificationUnitOfWork

    from .ingestion import ResultIngestor

log = getLogger(__name__)

S = ClassificationStatus

TOO_LONG_MESSAGE: Final[str] = "Remote service taking too long."
CAPTURE_FAILED_MESSAGE: Final[str] = "Failed to capture remote classification results."
RESTARTED_MESSAGE: Final[str] = "Termserver restarted."

THREAD_NAME: Final[str] = "classification-status-polling"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ClassificationStatusPoller:
    def __init__(  # noqa: PLR0913
        self,
        *,
        reasoner: RemoteReasonerClient,
        ingestor: ResultIngestor,
        unit_of_work_factory: Callable[[], ClassificationUnitOfWork],
        abort_after: timedelta,
        poll_interval: float = 1.0,
        cool_off: float = 30.0,
        stop_event: threading.Event | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.reasoner = reasoner
        self.ingestor = ingestor
        self.unit_of_work_factory = unit_of_work_factory
        self.abort_after = abort_after
        self.poll_interval = poll_interval
        self.cool_off = cool_off
        self._stop_event = stop_event or threading.Event()
        self._clock = clock
        self._lock = threading.Lock()
        self._in_progress: dict[str, Classification] = {}
        self._unsaved: set[str] = set()
        self._thread: threading.Thread | None = None

    # tracking

    def track(self, classification: Classification) -> None:
        with self._lock:
            self._in_progress[classification.id] = classification

    def tracked_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._in_progress)

    def clear(self) -> None:
        with self._lock:
            self._in_progress.clear()
            self._unsaved.clear()

    def _forget(self, classification_id: str) -> None:
        with self._lock:
            self._in_progress.pop(classification_id, None)

    # lifecycle

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name=THREAD_NAME, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
            if thread.is_alive():
                log.warning("Classification status polling did not stop within %ss", timeout)
        self._thread = None

    def run(self) -> None:
        log.info("Classification status polling started")
        try:
            while not self._stop_event.is_set():
                try:
                    self.sweep()
                except ReasonerCommunicationError:
                    log.warning(
                        "Problem with classification-service communication. "
                        "Trying again in %s seconds.",
                        self.cool_off,
                        exc_info=True,
                    )
                    if self._stop_event.wait(self.cool_off):
                        break
                    continue
                if self._stop_event.wait(self.poll_interval):
                    break
        finally:
            log.info("Classification status polling stopped")

    # sweeping

    def sweep(self) -> None:
        """Check every tracked job once.

        A communication failure aborts the sweep and propagates. Any other
        error only affects the job it came from.
        """

        with self._lock:
            snapshot = list(self._in_progress.values())
        for classification in snapshot:
            if self._stop_event.is_set():
                return
            try:
                self._check(classification)
            except ReasonerCommunicationError:
                raise
            except Exception:
                log.exception("Failed to update classification %s", classification.id)

    def _check(self, classification: Classification) -> None:
        if self._is_unsaved(classification.id):
            self._store(classification)
            return

        now = self._clock()
        timed_out = now - classification.creation_date > self.abort_after
        try:
            remote = self.reasoner.get_status(classification.id)
        except ReasonerCommunicationError:
            if not timed_out:
                raise
            remote = None

        if (
            remote is not None
            and remote.status == S.FAILED
            and can_transition(classification.status, S.FAILED)
        ):
            self._fail_remotely(classification, remote, now)
        elif timed_out:
            log.warning(
                "Classification %s on %s exceeded %s, marking it failed",
                classification.id,
                classification.path,
                self.abort_after,
            )
            fail(classification, TOO_LONG_MESSAGE, now=now)
        elif remote is not None and remote.status != classification.status:
            if not can_transition(classification.status, remote.status):
                log.debug(
                    "Ignoring remote status %s for classification %s in %s",
                    remote.status,
                    classification.id,
                    classification.status,
                )
                return
            self._apply(classification, remote, now)
        elif classification.status.in_progress:
            return
        self._store(classification)

    def _fail_remotely(
        self, classification: Classification, remote: ReasonerStatus, now: datetime
    ) -> None:
        log.warning(
            "Remote classification %s failed: %s (%s)",
            classification.id,
            remote.error_message,
            remote.developer_message,
        )
        fail(classification, remote.error_message or "Remote classification failed.", now=now)

    def _apply(self, classification: Classification, remote: ReasonerStatus, now: datetime) -> None:
        if remote.status == S.COMPLETED:
            self._complete(classification, now)
        else:
            transition(classification, remote.status)

    def _complete(self, classification: Classification, now: datetime) -> None:
        try:
            result = self.ingestor.ingest(classification)
        except ReasonerCommunicationError:
            # Status stays unchanged so the next sweep downloads again.
            raise
        except Exception:
            log.exception("Failed to capture results of classification %s", classification.id)
            fail(classification, CAPTURE_FAILED_MESSAGE, now=now)
            return
        transition(classification, S.COMPLETED)
        classification.completion_date = now
        classification.inferred_relationship_changes_found = result.relationship_changes_found
        classification.equivalent_concepts_found = result.equivalent_concepts_found
        log.info(
            "Classification %s completed: %s relationship changes, %s equivalent concept sets",
            classification.id,
            result.relationship_changes,
            result.equivalent_concept_sets,
        )

    def _persist(self, classification: Classification) -> None:
        with self.unit_of_work_factory() as uow:
            uow.repositories.classifications.save(classification)
            uow.commit()

    def _store(self, classification: Classification) -> None:
        # Stays tracked until the write succeeds.
        with self._lock:
            self._unsaved.add(classification.id)
        self._persist(classification)
        with self._lock:
            self._unsaved.discard(classification.id)
        if not classification.status.in_progress:
            self._forget(classification.id)

    def _is_unsaved(self, classification_id: str) -> bool:
        with self._lock:
            return classification_id in self._unsaved
