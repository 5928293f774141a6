"""Port for the remote reasoning (classification) service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from classipy.domain.model import ClassificationStatus


class ReasonerCommunicationError(RuntimeError):
    """Raised when the reasoning service cannot be reached or answers unexpectedly.

    This signals a transport-level problem, not a failed job: the caller is
    expected to back off and try again later.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True, frozen=True)
class ReasonerStatus:
    status: ClassificationStatus
    error_message: str | None = None
    developer_message: str | None = None


@runtime_checkable
class RemoteReasonerClient(Protocol):
    def submit(
        self,
        *,
        previous_package: str | None,
        dependency_package: str | None,
        delta_archive: Path,
        path: str,
        reasoner_id: str,
    ) -> str:
        """Submit a job and return the id assigned by the service."""
        ...

    def get_status(self, job_id: str) -> ReasonerStatus: ...

    def download_results(self, job_id: str) -> BinaryIO:
        """Return the compressed result archive of a completed job."""
        ...


__all__ = ["ReasonerCommunicationError", "ReasonerStatus", "RemoteReasonerClient"]
