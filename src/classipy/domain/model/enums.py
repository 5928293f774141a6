"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ClassificationStatus(StrEnum):
    SCHEDULED = "SCHEDULED"
    RUNNING = "RUNNING"
    FAILED = "FAILED"
    COMPLETED = "COMPLETED"
    STALE = "STALE"
    SAVING_IN_PROGRESS = "SAVING_IN_PROGRESS"
    SAVED = "SAVED"
    SAVE_FAILED = "SAVE_FAILED"

    @property
    def results_available(self) -> bool:
        return self in _RESULTS_AVAILABLE

    @property
    def in_progress(self) -> bool:
        return self in (ClassificationStatus.SCHEDULED, ClassificationStatus.RUNNING)


_RESULTS_AVAILABLE = frozenset(
    {
        ClassificationStatus.COMPLETED,
        ClassificationStatus.STALE,
        ClassificationStatus.SAVING_IN_PROGRESS,
        ClassificationStatus.SAVED,
        ClassificationStatus.SAVE_FAILED,
    }
)


class ChangeNature(StrEnum):
    """How the reasoner wants a relationship to change."""

    INFERRED = "INFERRED"
    REDUNDANT = "REDUNDANT"


class BranchMetadataKey(StrEnum):
    PREVIOUS_PACKAGE = "previousPackage"
    DEPENDENCY_PACKAGE = "dependencyPackage"
