"""Response models shared by campaign, mission and user endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from missionflow.progression.models import (
    MissionStatus,
    ProgressSummary,
    Rank,
    TransitionResult,
    UserMissionState,
)


class MissionStateResponse(BaseModel):
    """A user's state for one mission."""

    user_id: int = Field(alias="userId")
    mission_id: int = Field(alias="missionId")
    status: MissionStatus
    started_at: datetime | None = Field(default=None, alias="startedAt")
    submitted_at: datetime | None = Field(default=None, alias="submittedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    rewarded: bool = False
    submission: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}

    @classmethod
    def from_state(cls, state: UserMissionState) -> "MissionStateResponse":
        return cls(
            user_id=state.user_id,
            mission_id=state.mission_id,
            status=state.status,
            started_at=state.started_at,
            submitted_at=state.submitted_at,
            completed_at=state.completed_at,
            rewarded=state.rewarded_at is not None,
            submission=state.submission,
        )


class RankResponse(BaseModel):
    """A rank and its requirements."""

    id: int | None = None
    campaign_id: int | None = Field(default=None, alias="campaignId")
    level: int
    name: str
    title: str
    min_experience: int = Field(alias="minExperience")
    min_missions: int = Field(alias="minMissions")
    required_competencies: dict[str, int] = Field(alias="requiredCompetencies")
    currency_reward: int = Field(alias="currencyReward")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_rank(cls, rank: Rank) -> "RankResponse":
        return cls(
            id=rank.id,
            campaign_id=rank.campaign_id,
            level=rank.level,
            name=rank.name,
            title=rank.title,
            min_experience=rank.min_experience,
            min_missions=rank.min_missions,
            required_competencies=rank.required_competencies,
            currency_reward=rank.currency_reward,
        )


class TransitionResponse(BaseModel):
    """Outcome of a status change."""

    state: MissionStateResponse
    previous_status: MissionStatus = Field(alias="previousStatus")
    changed: bool
    rewarded: bool
    unlocked: list[int]
    rank_up: bool = Field(default=False, alias="rankUp")
    new_rank: RankResponse | None = Field(default=None, alias="newRank")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_result(cls, result: TransitionResult) -> "TransitionResponse":
        return cls(
            state=MissionStateResponse.from_state(result.state),
            previous_status=result.previous_status,
            changed=result.changed,
            rewarded=result.rewarded,
            unlocked=result.unlocked,
            rank_up=result.rank_up,
            new_rank=RankResponse.from_rank(result.new_rank) if result.new_rank else None,
        )


class ProgressSummaryResponse(BaseModel):
    """Aggregate progress through a campaign."""

    total: int
    completed: int
    percentage: float
    by_status: dict[str, int] = Field(alias="byStatus")
    experience_earned: int = Field(alias="experienceEarned")
    currency_earned: int = Field(alias="currencyEarned")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_summary(cls, summary: ProgressSummary) -> "ProgressSummaryResponse":
        return cls(
            total=summary.total,
            completed=summary.completed,
            percentage=summary.percentage,
            by_status={status.value: summary.by_status.get(status, 0) for status in MissionStatus},
            experience_earned=summary.experience_earned,
            currency_earned=summary.currency_earned,
        )
