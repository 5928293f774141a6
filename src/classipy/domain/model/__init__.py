"""Domain model for classification jobs and the concept store they touch."""

from __future__ import annotations

from .classification import (
    Classification,
    EquivalentConcepts,
    RelationshipChange,
    change_nature_for,
)
from .concept import Concept, ConceptMini, Relationship, SemanticIndexEntry, SemanticLookup
from .constants import (
    EXISTENTIAL_RESTRICTION_MODIFIER,
    INFERRED_RELATIONSHIP,
    ISA,
    STATED_RELATIONSHIP,
)
from .enums import BranchMetadataKey, ChangeNature, ClassificationStatus
from .identity import SYSTEM_IDENTITY, CallerIdentity

__all__ = [
    "EXISTENTIAL_RESTRICTION_MODIFIER",
    "INFERRED_RELATIONSHIP",
    "ISA",
    "STATED_RELATIONSHIP",
    "SYSTEM_IDENTITY",
    "BranchMetadataKey",
    "CallerIdentity",
    "ChangeNature",
    "Classification",
    "ClassificationStatus",
    "Concept",
    "ConceptMini",
    "EquivalentConcepts",
    "Relationship",
    "RelationshipChange",
    "SemanticIndexEntry",
    "SemanticLookup",
    "change_nature_for",
]
