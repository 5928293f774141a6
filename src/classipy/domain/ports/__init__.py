"""Domain port definitions for adapters."""

from __future__ import annotations

from .branches import BranchNotFoundError, BranchStore, BranchTransaction
from .concepts import ConceptStore
from .export import DeltaExporter, ExportError
from .persistence import (
    ClassificationRepository,
    EquivalentConceptsRepository,
    RelationshipChangeRepository,
    Repository,
    ResultRepository,
)
from .reasoner import ReasonerCommunicationError, ReasonerStatus, RemoteReasonerClient
from .unit_of_work import (
    ClassificationRepositories,
    ClassificationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "BranchNotFoundError",
    "BranchStore",
    "BranchTransaction",
    "ClassificationRepositories",
    "ClassificationRepository",
    "ClassificationUnitOfWork",
    "ConceptStore",
    "DeltaExporter",
    "EquivalentConceptsRepository",
    "ExportError",
    "ReasonerCommunicationError",
    "ReasonerStatus",
    "RelationshipChangeRepository",
    "RemoteReasonerClient",
    "Repository",
    "RepositoryCollection",
    "ResultRepository",
    "UnitOfWork",
]
