"""Apply stored relationship changes to concepts on a branch.

Changes are read in (source concept, group, sort number) order and applied in
windows. A window never splits the changes of one concept. Every window is
written through the same branch transaction, so either all windows land or the
commit is aborted and none do.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from classipy.domain.model import ChangeNature, Relationship

from .errors import ClassificationSaveError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from classipy.domain.model import CallerIdentity, Classification, Concept, RelationshipChange
    from classipy.domain.ports.branches import BranchStore, BranchTransaction
    from classipy.domain.ports.concepts import ConceptStore

log = getLogger(__name__)

DEFAULT_WINDOW_SIZE: Final[int] = 10_000


def lock_reason_for(classification: Classification) -> str:
    return f"Saving classification {classification.id}"


def apply_relationship_changes(
    concept: Concept,
    changes: Iterable[RelationshipChange],
    *,
    copy_display: bool = False,
) -> None:
    """Rewrite ``concept`` in place according to ``changes``.

    With ``copy_display`` the display labels of each change are copied onto the
    relationship it touched, which is what a preview wants.
    """

    for change in changes:
        relationship: Relationship | None
        if change.change_nature == ChangeNature.INFERRED:
            if change.is_new_relationship:
                relationship = Relationship(
                    active=True,
                    module_id=concept.module_id,
                    destination_id=change.destination_id,
                    group=change.group,
                    type_id=change.type_id,
                    characteristic_type_id=change.characteristic_type_id,
                    modifier_id=change.modifier_id,
                )
                concept.add_relationship(relationship)
            else:
                relationship = concept.get_relationship(change.relationship_id)
                if relationship is None:
                    raise ClassificationSaveError(
                        f"Relationship {change.relationship_id} not found within "
                        f"Concept {concept.concept_id} so can not apply update."
                    )
                relationship.active = True
                relationship.group = change.group
        else:
            # Retiring a relationship that is already gone is a no-op.
            concept.remove_relationship(change.relationship_id)
            relationship = None

        if copy_display and relationship is not None:
            relationship.source = change.source
            relationship.type = change.type
            relationship.target = change.destination


def concept_windows(
    changes: Iterable[RelationshipChange], window_size: int
) -> Iterator[list[RelationshipChange]]:
    """Cut a source-ordered change stream into windows of whole concepts.

    A window holds at most ``window_size`` changes unless it holds the changes
    of a single concept that alone exceeds that size.
    """

    if window_size <= 0:
        raise ValueError("Window size must be positive")
    window: list[RelationshipChange] = []
    for concept_changes in _runs_by_source(changes):
        if window and len(window) + len(concept_changes) > window_size:
            yield window
            window = []
        window.extend(concept_changes)
    if window:
        yield window


def _runs_by_source(changes: Iterable[RelationshipChange]) -> Iterator[list[RelationshipChange]]:
    run: list[RelationshipChange] = []
    for change in changes:
        if run and change.source_id != run[-1].source_id:
            yield run
            run = []
        run.append(change)
    if run:
        yield run


def group_by_source(changes: Iterable[RelationshipChange]) -> dict[str, list[RelationshipChange]]:
    grouped: dict[str, list[RelationshipChange]] = {}
    for change in changes:
        grouped.setdefault(change.source_id, []).append(change)
    return grouped


class ConceptMergeEngine:
    def __init__(
        self,
        *,
        branches: BranchStore,
        concepts: ConceptStore,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> None:
        if window_size <= 0:
            raise ValueError("Window size must be positive")
        self.branches = branches
        self.concepts = concepts
        self.window_size = window_size

    def merge(
        self,
        classification: Classification,
        changes: Iterable[RelationshipChange],
        identity: CallerIdentity,
    ) -> int:
        """Apply ``changes`` in one branch commit and return the number of concepts updated.

        Any error aborts the commit and propagates.
        """

        updated = 0
        with self.branches.open_transaction(
            classification.path, lock_reason_for(classification), identity
        ) as transaction:
            for window in concept_windows(changes, self.window_size):
                updated += self._merge_window(classification.path, window, transaction)
            transaction.commit()
        log.info(
            "Saved classification %s to %s, %s concepts updated",
            classification.id,
            classification.path,
            updated,
        )
        return updated

    def _merge_window(
        self,
        path: str,
        window: Sequence[RelationshipChange],
        transaction: BranchTransaction,
    ) -> int:
        grouped = group_by_source(window)
        concepts = self.concepts.find_concepts(path, list(grouped))
        missing = grouped.keys() - {concept.concept_id for concept in concepts}
        if missing:
            log.warning(
                "Skipping relationship changes for %s concepts missing from %s: %s",
                len(missing),
                path,
                sorted(missing),
            )
        for concept in concepts:
            apply_relationship_changes(concept, grouped[concept.concept_id])
        if concepts:
            self.concepts.update_within(concepts, transaction)
        log.debug("Merged window of %s changes into %s concepts", len(window), len(concepts))
        return len(concepts)

    @staticmethod
    def preview(concept: Concept, changes: Iterable[RelationshipChange]) -> Concept:
        """Return a copy of ``concept`` with ``changes`` applied; ``concept`` is untouched."""

        preview = concept.copy()
        apply_relationship_changes(preview, changes, copy_display=True)
        return preview
