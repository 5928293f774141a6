"""Value types owned by the concept store collaborator.

The classification core reads and rewrites these but never persists them
itself; that is the job of :class:`~classipy.domain.ports.concepts.ConceptStore`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class ConceptMini:
    """Lightweight concept label used to decorate result records."""

    concept_id: str
    fsn: str | None = None
    pt: str | None = None


@dataclass(eq=False, kw_only=True)
class Relationship:
    relationship_id: str | None = None
    active: bool = True
    module_id: str | None = None
    source_id: str | None = None
    destination_id: str
    group: int = 0
    type_id: str
    characteristic_type_id: str
    modifier_id: str

    source: ConceptMini | None = field(default=None, repr=False)
    type: ConceptMini | None = field(default=None, repr=False)
    target: ConceptMini | None = field(default=None, repr=False)


@dataclass(eq=False, kw_only=True)
class Concept:
    concept_id: str
    module_id: str
    active: bool = True
    relationships: list[Relationship] = field(default_factory=list[Relationship])

    def get_relationship(self, relationship_id: str) -> Relationship | None:
        for relationship in self.relationships:
            if relationship.relationship_id == relationship_id:
                return relationship
        return None

    def add_relationship(self, relationship: Relationship) -> None:
        relationship.source_id = self.concept_id
        self.relationships.append(relationship)

    def remove_relationship(self, relationship_id: str) -> bool:
        """Drop the relationship with ``relationship_id``; report whether it existed."""

        before = len(self.relationships)
        self.relationships = [
            rel for rel in self.relationships if rel.relationship_id != relationship_id
        ]
        return len(self.relationships) != before

    def copy(self) -> Concept:
        return copy.deepcopy(self)


@dataclass(slots=True, frozen=True)
class SemanticLookup:
    """One clause of a semantic index existence lookup.

    Matches the stated index entry of ``concept_id`` when it does *not* already
    hold ``destination_id`` as a parent (for is-a) or as a value of the
    ``type_id`` attribute.
    """

    concept_id: str
    type_id: str
    destination_id: str


@dataclass(slots=True, frozen=True)
class SemanticIndexEntry:
    """Stated view of one concept in the derived semantic index."""

    concept_id: str
    parents: frozenset[str] = frozenset()
    attributes: dict[str, frozenset[str]] = field(default_factory=dict[str, frozenset[str]])

    def attribute_values(self, type_id: str) -> frozenset[str]:
        return self.attributes.get(type_id, frozenset())
