"""Campaign API endpoints."""

import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field

from missionflow.api.dependencies import ServiceDep, SessionDep
from missionflow.api.schemas import MissionStateResponse, ProgressSummaryResponse
from missionflow.progression.models import ConfirmationType
from missionflow.progression.validation import Severity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


# Request/response models


class GraphMissionResponse(BaseModel):
    """A mission node with its edges."""

    id: int
    name: str
    experience_reward: int = Field(alias="experienceReward")
    currency_reward: int = Field(alias="currencyReward")
    confirmation_type: ConfirmationType = Field(alias="confirmationType")
    prerequisites: list[int]
    dependents: list[int]

    model_config = {"populate_by_name": True}


class GraphResponse(BaseModel):
    """A campaign's dependency graph."""

    campaign_id: int = Field(alias="campaignId")
    missions: list[GraphMissionResponse]
    roots: list[int]
    order: list[int]

    model_config = {"populate_by_name": True}


class ValidationIssueResponse(BaseModel):
    type: str
    severity: str
    message: str
    mission_id: int | None = Field(default=None, alias="missionId")
    mission_name: str | None = Field(default=None, alias="missionName")
    suggestion: str | None = None

    model_config = {"populate_by_name": True}


class ValidationSummaryResponse(BaseModel):
    total_missions: int = Field(alias="totalMissions")
    total_issues: int = Field(alias="totalIssues")
    critical: int
    high: int
    medium: int
    low: int
    entry_points: int = Field(alias="entryPoints")
    dead_ends: int = Field(alias="deadEnds")
    orphaned: int

    model_config = {"populate_by_name": True}


class ValidationReportResponse(BaseModel):
    """Campaign structure health report."""

    is_valid: bool = Field(alias="isValid")
    health_score: int = Field(alias="healthScore")
    issues: list[ValidationIssueResponse]
    summary: ValidationSummaryResponse

    model_config = {"populate_by_name": True}


class InitializeUserRequest(BaseModel):
    user_id: int = Field(alias="userId")

    model_config = {"populate_by_name": True}


class InitializeUserResponse(BaseModel):
    created: int
    missions: list[MissionStateResponse]


class ProgressResponse(BaseModel):
    """A user's states and summary for one campaign."""

    missions: list[MissionStateResponse]
    summary: ProgressSummaryResponse


# Endpoints


@router.get("/{campaign_id}/graph", response_model=GraphResponse)
async def get_graph(campaign_id: int, service: ServiceDep) -> GraphResponse:
    """Get the campaign's mission dependency graph."""
    graph = await service.load_graph(campaign_id)
    return GraphResponse(
        campaign_id=campaign_id,
        missions=[
            GraphMissionResponse(
                id=m.id,
                name=m.name,
                experience_reward=m.experience_reward,
                currency_reward=m.currency_reward,
                confirmation_type=m.confirmation_type,
                prerequisites=sorted(graph.prerequisites_of(m.id)),
                dependents=sorted(graph.dependents_of(m.id)),
            )
            for m in graph.missions
        ],
        roots=[m.id for m in graph.root_missions()],
        order=graph.topological_order(),
    )


@router.post("/{campaign_id}/validate", response_model=ValidationReportResponse)
async def validate_campaign_structure(
    campaign_id: int, service: ServiceDep
) -> ValidationReportResponse:
    """Check the campaign structure and score its health."""
    report = await service.validate(campaign_id)
    return ValidationReportResponse(
        is_valid=report.is_valid,
        health_score=report.health_score,
        issues=[
            ValidationIssueResponse(
                type=issue.kind.value,
                severity=issue.severity.value,
                message=issue.message,
                mission_id=issue.mission_id,
                mission_name=issue.mission_name,
                suggestion=issue.suggestion,
            )
            for issue in report.issues
        ],
        summary=ValidationSummaryResponse(
            total_missions=report.total_missions,
            total_issues=len(report.issues),
            critical=report.count(Severity.CRITICAL),
            high=report.count(Severity.HIGH),
            medium=report.count(Severity.MEDIUM),
            low=report.count(Severity.LOW),
            entry_points=report.entry_points,
            dead_ends=report.dead_ends,
            orphaned=report.orphaned,
        ),
    )


@router.post("/{campaign_id}/initialize-user", response_model=InitializeUserResponse)
async def initialize_user(
    campaign_id: int,
    request: InitializeUserRequest,
    service: ServiceDep,
    session: SessionDep,
) -> InitializeUserResponse:
    """Seed the user's mission states for a campaign.

    Safe to repeat: existing progress is never reset.
    """
    tracker = await service.tracker_for_campaign(campaign_id)
    created = await tracker.initialize(request.user_id)
    states = await tracker.states(request.user_id)
    await session.commit()

    logger.info(
        f"Initialized user {request.user_id} in campaign {campaign_id} ({len(created)} new)"
    )
    return InitializeUserResponse(
        created=len(created),
        missions=[MissionStateResponse.from_state(s) for s in states],
    )


@router.get("/{campaign_id}/users/{user_id}/progress", response_model=ProgressResponse)
async def get_user_progress(
    campaign_id: int, user_id: int, service: ServiceDep
) -> ProgressResponse:
    """Get a user's mission states and progress summary for a campaign."""
    tracker = await service.tracker_for_campaign(campaign_id)
    states = await tracker.states(user_id)
    summary = await tracker.progress(user_id)
    return ProgressResponse(
        missions=[MissionStateResponse.from_state(s) for s in states],
        summary=ProgressSummaryResponse.from_summary(summary),
    )
