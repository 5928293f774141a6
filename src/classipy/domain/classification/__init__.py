"""Classification orchestration: lifecycle, ingestion, merge and polling."""

from __future__ import annotations

from .archive import ResultArchiveParser, ResultEntryKind, iter_result_entries
from .differ import StatedVsInferredDiffer
from .errors import (
    ClassificationError,
    ClassificationNotFoundError,
    ClassificationSaveError,
    ClassificationServiceError,
    IllegalClassificationStateError,
    MissingBranchMetadataError,
    ResultIngestionError,
)
from .ingestion import IngestionResult, ResultIngestor
from .lifecycle import ALLOWED_TRANSITIONS, TERMINAL_STATUSES, can_transition, transition
from .merge import ConceptMergeEngine, apply_relationship_changes
from .polling import ClassificationStatusPoller
from .service import (
    ClassificationService,
    EquivalentConceptsView,
    creation_order_key,
    delete_all_classifications,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "ClassificationError",
    "ClassificationNotFoundError",
    "ClassificationSaveError",
    "ClassificationService",
    "ClassificationServiceError",
    "ClassificationStatusPoller",
    "ConceptMergeEngine",
    "EquivalentConceptsView",
    "IllegalClassificationStateError",
    "IngestionResult",
    "MissingBranchMetadataError",
    "ResultArchiveParser",
    "ResultEntryKind",
    "ResultIngestionError",
    "ResultIngestor",
    "StatedVsInferredDiffer",
    "apply_relationship_changes",
    "can_transition",
    "creation_order_key",
    "delete_all_classifications",
    "iter_result_entries",
    "transition",
]
