"""Factories for classification records used across tests."""

from __future__ import annotations

from datetime import UTC, datetime

from classipy.domain.model import (
    EXISTENTIAL_RESTRICTION_MODIFIER,
    ISA,
    STATED_RELATIONSHIP,
    Classification,
    ClassificationStatus,
    Concept,
    Relationship,
    RelationshipChange,
    change_nature_for,
)

BRANCH = "MAIN/PROJECT-A"
HEAD = datetime(2026, 3, 1, 8, 30, tzinfo=UTC)
CREATED = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
MODULE = "900000000000207008"


def make_classification(
    classification_id: str = "job-1",
    *,
    path: str = BRANCH,
    status: ClassificationStatus = ClassificationStatus.SCHEDULED,
    creation_date: datetime = CREATED,
    last_commit_date: datetime = HEAD,
    changes_found: bool | None = None,
) -> Classification:
    return Classification(
        id=classification_id,
        path=path,
        reasoner_id="org.semanticweb.elk.owlapi.ElkReasonerFactory",
        user_id="alice",
        status=status,
        creation_date=creation_date,
        last_commit_date=last_commit_date,
        inferred_relationship_changes_found=changes_found,
    )


def make_change(
    source_id: str,
    destination_id: str,
    *,
    classification_id: str = "job-1",
    sort_number: int = 0,
    relationship_id: str = "",
    active: bool = True,
    group: int = 0,
    type_id: str = ISA,
) -> RelationshipChange:
    return RelationshipChange(
        classification_id=classification_id,
        sort_number=sort_number,
        relationship_id=relationship_id,
        active=active,
        source_id=source_id,
        destination_id=destination_id,
        group=group,
        type_id=type_id,
        modifier_id=EXISTENTIAL_RESTRICTION_MODIFIER,
        change_nature=change_nature_for(active),
    )


def make_relationship(
    relationship_id: str,
    destination_id: str,
    *,
    active: bool = True,
    group: int = 0,
    type_id: str = ISA,
) -> Relationship:
    return Relationship(
        relationship_id=relationship_id,
        active=active,
        module_id=MODULE,
        destination_id=destination_id,
        group=group,
        type_id=type_id,
        characteristic_type_id=STATED_RELATIONSHIP,
        modifier_id=EXISTENTIAL_RESTRICTION_MODIFIER,
    )


def make_concept(concept_id: str, *relationships: Relationship) -> Concept:
    concept = Concept(concept_id=concept_id, module_id=MODULE)
    for relationship in relationships:
        concept.add_relationship(relationship)
    return concept
