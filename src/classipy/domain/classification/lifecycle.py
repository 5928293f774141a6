"""Classification job state machine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from classipy.domain.model import ClassificationStatus

from .errors import IllegalClassificationStateError

if TYPE_CHECKING:
    from datetime import datetime

    from classipy.domain.model import Classification

S = ClassificationStatus

ALLOWED_TRANSITIONS: Final[dict[ClassificationStatus, frozenset[ClassificationStatus]]] = {
    # A quick remote job can be observed finished without ever being seen running.
    S.SCHEDULED: frozenset({S.RUNNING, S.FAILED, S.COMPLETED}),
    S.RUNNING: frozenset({S.FAILED, S.COMPLETED}),
    S.COMPLETED: frozenset({S.STALE, S.SAVING_IN_PROGRESS, S.SAVED}),
    S.SAVING_IN_PROGRESS: frozenset({S.SAVED, S.SAVE_FAILED}),
    S.FAILED: frozenset(),
    S.STALE: frozenset(),
    S.SAVED: frozenset(),
    S.SAVE_FAILED: frozenset(),
}

TERMINAL_STATUSES: Final[frozenset[ClassificationStatus]] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(current: ClassificationStatus, target: ClassificationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(classification: Classification, target: ClassificationStatus) -> None:
    """Move ``classification`` to ``target`` or raise if the step is not allowed."""

    current = classification.status
    if current == target:
        return
    if not can_transition(current, target):
        raise IllegalClassificationStateError(
            f"Classification {classification.id} cannot move from {current} to {target}"
        )
    classification.status = target


def fail(classification: Classification, message: str, *, now: datetime) -> None:
    """Force an in-flight job to FAILED with a diagnostic message."""

    transition(classification, S.FAILED)
    classification.error_message = message
    classification.completion_date = now


def mark_stale_if_branch_moved(classification: Classification, branch_head: datetime) -> bool:
    """Flip a COMPLETED job to STALE when its branch has new commits."""

    if classification.status != S.COMPLETED:
        return False
    if not classification.is_stale_against(branch_head):
        return False
    transition(classification, S.STALE)
    return True
