"""Errors raised by the classification core."""

from __future__ import annotations


class ClassificationError(Exception):
    """Base class for classification failures."""


class MissingBranchMetadataError(ClassificationError):
    """Raised when a branch lacks the package metadata a classification needs."""


class ClassificationNotFoundError(ClassificationError, LookupError):
    """Raised when no classification with the given id exists on a branch."""


class IllegalClassificationStateError(ClassificationError):
    """Raised when an operation does not fit the job's current status."""


class ClassificationServiceError(ClassificationError):
    """Raised when a classification cannot be submitted to the reasoner."""


class ResultIngestionError(ClassificationError):
    """Raised when a result archive cannot be decoded or reconciled."""


class ClassificationSaveError(ClassificationError):
    """Raised when reasoner output does not fit the concepts it targets."""
