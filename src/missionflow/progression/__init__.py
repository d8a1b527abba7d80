"""Mission progression core.

Provides:
- Mission dependency graph (build/validate, prerequisite and dependent lookup)
- Progress tracker (per-user status state machine, rewards, unlocking)
- Signed QR payloads for offline check-in
- Campaign structure validation reports
- Rank ladders and promotion checks
"""

from missionflow.progression.errors import (
    InvalidTransitionError,
    NotFoundError,
    ProgressionError,
    QRVerificationError,
    ValidationError,
)
from missionflow.progression.graph import MissionGraph, find_cycle
from missionflow.progression.memory import InMemoryProgressStore
from missionflow.progression.models import (
    ConfirmationType,
    MissionDependency,
    MissionNode,
    MissionStatus,
    ProgressSummary,
    Rank,
    TransitionResult,
    UserMissionState,
    UserStanding,
)
from missionflow.progression.presentation import ThemeConfig
from missionflow.progression.ranks import RankProgress, check_rank, rank_progress
from missionflow.progression.tracker import ProgressStore, ProgressTracker
from missionflow.progression.validation import CampaignReport, validate_campaign

__all__ = [
    # Models
    "ConfirmationType",
    "MissionDependency",
    "MissionNode",
    "MissionStatus",
    "ProgressSummary",
    "Rank",
    "TransitionResult",
    "UserMissionState",
    "UserStanding",
    "ThemeConfig",
    # Errors
    "ProgressionError",
    "ValidationError",
    "NotFoundError",
    "InvalidTransitionError",
    "QRVerificationError",
    # Graph
    "MissionGraph",
    "find_cycle",
    # Tracker
    "ProgressStore",
    "ProgressTracker",
    "InMemoryProgressStore",
    # Validation
    "CampaignReport",
    "validate_campaign",
    # Ranks
    "RankProgress",
    "check_rank",
    "rank_progress",
]
