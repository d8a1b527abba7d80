"""Progression domain models.

Plain records shared by the graph, the tracker and the persistence layer.
None of these types know about SQLAlchemy or FastAPI.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MissionStatus(Enum):
    """Per-user mission status."""

    LOCKED = "LOCKED"
    AVAILABLE = "AVAILABLE"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING_REVIEW = "PENDING_REVIEW"
    COMPLETED = "COMPLETED"


class ConfirmationType(Enum):
    """How a finished mission gets confirmed."""

    AUTO = "AUTO"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    FILE_CHECK = "FILE_CHECK"
    QR_SCAN = "QR_SCAN"

    @property
    def requires_review(self) -> bool:
        """Whether completion needs an approval step (PENDING_REVIEW)."""
        return self is not ConfirmationType.AUTO


@dataclass(frozen=True)
class MissionNode:
    """A mission as seen by the dependency graph.

    Attributes:
        id: Mission ID
        campaign_id: Owning campaign
        name: Display name
        experience_reward: Experience credited on completion
        currency_reward: In-app currency credited on completion
        confirmation_type: How completion is confirmed
        competencies: Competency ID -> points credited on completion
        description: Mission description
        check_in_window_seconds: Max QR age for QR_SCAN missions (None = default)
    """

    id: int
    campaign_id: int
    name: str
    experience_reward: int = 0
    currency_reward: int = 0
    confirmation_type: ConfirmationType = ConfirmationType.AUTO
    competencies: dict[int, int] = field(default_factory=dict, hash=False, compare=False)
    description: str = ""
    check_in_window_seconds: int | None = None


@dataclass(frozen=True)
class MissionDependency:
    """Edge meaning source must be completed before target may unlock."""

    source_id: int
    target_id: int


@dataclass
class UserMissionState:
    """One user's status for one mission.

    Keyed by (user_id, mission_id). Timestamps record when each state was entered.
    """

    user_id: int
    mission_id: int
    status: MissionStatus
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    submitted_at: datetime | None = None
    completed_at: datetime | None = None
    rewarded_at: datetime | None = None
    submission: dict[str, Any] | None = None

    @property
    def key(self) -> tuple[int, int]:
        return (self.user_id, self.mission_id)


@dataclass(frozen=True)
class Rank:
    """One step of a rank ladder.

    Attributes:
        level: Position on the ladder (users start at 0)
        name: Display name
        title: Longer honorific shown on promotion
        min_experience: Experience needed to reach this rank
        min_missions: Completed missions needed to reach this rank
        required_competencies: Competency name -> minimum points
        currency_reward: Currency credited on promotion
        campaign_id: Owning campaign, None for the global ladder
        id: Database ID, if stored
    """

    level: int
    name: str
    title: str = ""
    min_experience: int = 0
    min_missions: int = 0
    required_competencies: dict[str, int] = field(
        default_factory=dict, hash=False, compare=False
    )
    currency_reward: int = 0
    campaign_id: int | None = None
    id: int | None = None


@dataclass
class UserStanding:
    """What rank promotion looks at for one user."""

    user_id: int
    current_rank: int
    experience: int
    missions_completed: int
    competencies: dict[str, int] = field(default_factory=dict)


@dataclass
class TransitionResult:
    """Outcome of a requested status change.

    Attributes:
        state: The state record after the transition
        previous_status: Status before the request
        changed: False for the idempotent COMPLETED -> COMPLETED no-op
        rewarded: True if rewards were credited by this request
        unlocked: Mission IDs that became AVAILABLE as a consequence
        new_rank: Rank the user was promoted to by this request, if any
    """

    state: UserMissionState
    previous_status: MissionStatus
    changed: bool = True
    rewarded: bool = False
    unlocked: list[int] = field(default_factory=list)
    new_rank: Rank | None = None

    @property
    def rank_up(self) -> bool:
        return self.new_rank is not None


@dataclass
class ProgressSummary:
    """Aggregate view of a user's progress through one campaign."""

    total: int
    by_status: dict[MissionStatus, int]
    experience_earned: int
    currency_earned: int

    @property
    def completed(self) -> int:
        return self.by_status.get(MissionStatus.COMPLETED, 0)

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return round(100.0 * self.completed / self.total, 1)
