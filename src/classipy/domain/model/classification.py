"""Classification job records and the result records they own.

All three entities are keyed by the remote job id. Result records are written
once while a job's results are ingested and are read-only afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from classipy.domain.model.constants import INFERRED_RELATIONSHIP
from classipy.domain.model.enums import ChangeNature, ClassificationStatus

if TYPE_CHECKING:
    from datetime import datetime

    from classipy.domain.model.concept import ConceptMini


@dataclass(eq=False, kw_only=True)
class Classification:
    """One job submitted to the remote reasoning service."""

    id: str
    path: str
    reasoner_id: str
    user_id: str | None = None
    status: ClassificationStatus = ClassificationStatus.SCHEDULED

    creation_date: datetime
    # Branch head when the job was submitted; never changes afterwards.
    last_commit_date: datetime
    completion_date: datetime | None = None
    save_date: datetime | None = None

    error_message: str | None = None
    inferred_relationship_changes_found: bool | None = None
    equivalent_concepts_found: bool | None = None

    def is_stale_against(self, branch_head: datetime) -> bool:
        return self.last_commit_date != branch_head


@dataclass(eq=False, kw_only=True)
class RelationshipChange:
    """A relationship the reasoner wants added, reactivated or retired."""

    classification_id: str
    sort_number: int
    relationship_id: str = ""
    active: bool
    source_id: str
    destination_id: str
    group: int
    type_id: str
    characteristic_type_id: str = INFERRED_RELATIONSHIP
    modifier_id: str
    change_nature: ChangeNature
    inferred_not_stated: bool = False

    id: int | None = None

    # Display labels, joined on read and never persisted.
    source: ConceptMini | None = field(default=None, repr=False)
    destination: ConceptMini | None = field(default=None, repr=False)
    type: ConceptMini | None = field(default=None, repr=False)

    @property
    def is_new_relationship(self) -> bool:
        return not self.relationship_id


@dataclass(eq=False, kw_only=True)
class EquivalentConcepts:
    """A set of concepts the reasoner found to be equivalent."""

    classification_id: str
    concept_ids: set[str] = field(default_factory=set[str])

    id: int | None = None

    def add_concept_id(self, concept_id: str) -> None:
        self.concept_ids.add(concept_id)


def change_nature_for(active: bool) -> ChangeNature:  # noqa: FBT001
    return ChangeNature.INFERRED if active else ChangeNature.REDUNDANT
