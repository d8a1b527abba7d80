"""Mission status state machine.

LOCKED -> AVAILABLE -> IN_PROGRESS -> (PENDING_REVIEW ->) COMPLETED

PENDING_REVIEW is only used by missions whose confirmation type needs an
approval step; AUTO missions go straight from IN_PROGRESS to COMPLETED.
A rejected review sends the mission back to AVAILABLE. COMPLETED is terminal.
"""

from missionflow.progression.errors import InvalidTransitionError
from missionflow.progression.models import ConfirmationType, MissionStatus

ALLOWED_TRANSITIONS: dict[MissionStatus, frozenset[MissionStatus]] = {
    MissionStatus.LOCKED: frozenset({MissionStatus.AVAILABLE}),
    MissionStatus.AVAILABLE: frozenset({MissionStatus.IN_PROGRESS}),
    MissionStatus.IN_PROGRESS: frozenset(
        {MissionStatus.PENDING_REVIEW, MissionStatus.COMPLETED}
    ),
    MissionStatus.PENDING_REVIEW: frozenset(
        {MissionStatus.COMPLETED, MissionStatus.AVAILABLE}
    ),
    MissionStatus.COMPLETED: frozenset(),
}


def is_noop(current: MissionStatus, target: MissionStatus) -> bool:
    """Re-completing a completed mission is accepted and does nothing."""
    return current is MissionStatus.COMPLETED and target is MissionStatus.COMPLETED


def validate_transition(
    current: MissionStatus,
    target: MissionStatus,
    confirmation_type: ConfirmationType,
    prerequisites_met: bool = True,
) -> None:
    """Check that a status change is legal.

    Args:
        current: Current status
        target: Requested status
        confirmation_type: The mission's confirmation type
        prerequisites_met: Whether every prerequisite is COMPLETED for the user

    Raises:
        InvalidTransitionError: If the change is not allowed
    """
    if is_noop(current, target):
        return

    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)

    if current is MissionStatus.LOCKED and not prerequisites_met:
        raise InvalidTransitionError(current, target, "prerequisites are not completed")

    if current is MissionStatus.IN_PROGRESS:
        if target is MissionStatus.COMPLETED and confirmation_type.requires_review:
            raise InvalidTransitionError(
                current, target, f"{confirmation_type.value} missions need review"
            )
        if target is MissionStatus.PENDING_REVIEW and not confirmation_type.requires_review:
            raise InvalidTransitionError(
                current, target, "AUTO missions complete without review"
            )
