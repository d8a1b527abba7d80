"""Mission API endpoints: status changes, check-in and dependency editing."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from missionflow.api.dependencies import ServiceDep, SessionDep
from missionflow.api.rate_limit import check_in_rate_limit, qr_code_rate_limit
from missionflow.api.schemas import TransitionResponse
from missionflow.progression.errors import NotFoundError, QRVerificationError
from missionflow.progression.models import ConfirmationType, MissionStatus
from missionflow.progression.qr import generate_qr_payload
from missionflow.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/missions", tags=["missions"])


# Request/response models


class TransitionRequest(BaseModel):
    user_id: int = Field(alias="userId")
    status: MissionStatus

    model_config = {"populate_by_name": True}


class SubmitRequest(BaseModel):
    user_id: int = Field(alias="userId")
    submission: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}


class ReviewRequest(BaseModel):
    user_id: int = Field(alias="userId")
    approved: bool
    comment: str | None = None

    model_config = {"populate_by_name": True}


class CheckInRequest(BaseModel):
    """QR check-in; qrData is the scanned JSON text or the decoded object."""

    user_id: int = Field(alias="userId")
    qr_data: str | dict[str, Any] = Field(alias="qrData")
    checked_in_by: int | None = Field(default=None, alias="checkedInBy")

    model_config = {"populate_by_name": True}


class QRCodeResponse(BaseModel):
    """Signed payload to render as a QR code."""

    mission_id: int = Field(alias="missionId")
    event_id: str | None = Field(default=None, alias="eventId")
    timestamp: int
    signature: str
    data: str

    model_config = {"populate_by_name": True}


class DependencyRequest(BaseModel):
    source_mission_id: int = Field(alias="sourceMissionId")
    target_mission_id: int = Field(alias="targetMissionId")

    model_config = {"populate_by_name": True}


class DependencyResponse(BaseModel):
    source_mission_id: int = Field(alias="sourceMissionId")
    target_mission_id: int = Field(alias="targetMissionId")

    model_config = {"populate_by_name": True}


class DeleteDependencyResponse(BaseModel):
    success: bool


# Endpoints
# Static paths are registered before /{mission_id} routes.


@router.post("/dependencies", response_model=DependencyResponse)
async def create_dependency(
    request: DependencyRequest, service: ServiceDep, session: SessionDep
) -> DependencyResponse:
    """Make one mission a prerequisite of another.

    Rejected with 422 if the edge exists, crosses campaigns or creates a cycle.
    """
    dependency = await service.add_dependency(
        request.source_mission_id, request.target_mission_id
    )
    await session.commit()
    return DependencyResponse(
        source_mission_id=dependency.source_id,
        target_mission_id=dependency.target_id,
    )


@router.delete("/dependencies", response_model=DeleteDependencyResponse)
async def delete_dependency(
    service: ServiceDep,
    session: SessionDep,
    source_mission_id: Annotated[int, Query(alias="sourceMissionId")],
    target_mission_id: Annotated[int, Query(alias="targetMissionId")],
) -> DeleteDependencyResponse:
    """Remove a dependency edge."""
    removed = await service.remove_dependency(source_mission_id, target_mission_id)
    await session.commit()
    return DeleteDependencyResponse(success=removed)


@router.post("/{mission_id}/transition", response_model=TransitionResponse)
async def transition_mission(
    mission_id: int,
    request: TransitionRequest,
    service: ServiceDep,
    session: SessionDep,
) -> TransitionResponse:
    """Move a user's mission to a new status."""
    tracker = await service.tracker_for_mission(mission_id)
    result = await tracker.request_transition(request.user_id, mission_id, request.status)
    await session.commit()
    return TransitionResponse.from_result(result)


@router.post("/{mission_id}/submit", response_model=TransitionResponse)
async def submit_mission(
    mission_id: int,
    request: SubmitRequest,
    service: ServiceDep,
    session: SessionDep,
) -> TransitionResponse:
    """Hand in a mission.

    AUTO missions complete immediately; others go to review.
    """
    tracker = await service.tracker_for_mission(mission_id)
    result = await tracker.submit(request.user_id, mission_id, request.submission)
    await session.commit()
    return TransitionResponse.from_result(result)


@router.post("/{mission_id}/review", response_model=TransitionResponse)
async def review_mission(
    mission_id: int,
    request: ReviewRequest,
    service: ServiceDep,
    session: SessionDep,
) -> TransitionResponse:
    """Approve or reject a mission waiting for review."""
    tracker = await service.tracker_for_mission(mission_id)
    result = await tracker.review(
        request.user_id, mission_id, request.approved, request.comment
    )
    await session.commit()

    logger.info(
        f"Mission {mission_id} for user {request.user_id} "
        f"{'approved' if request.approved else 'rejected'}"
    )
    return TransitionResponse.from_result(result)


@router.post(
    "/{mission_id}/check-in",
    response_model=TransitionResponse,
    dependencies=[Depends(check_in_rate_limit)],
)
async def check_in(
    mission_id: int,
    request: CheckInRequest,
    service: ServiceDep,
    session: SessionDep,
) -> TransitionResponse:
    """Complete an offline mission with its signed QR code."""
    settings = get_settings()
    tracker = await service.tracker_for_mission(mission_id)
    result = await tracker.check_in(
        request.user_id,
        mission_id,
        request.qr_data,
        secret=settings.qr_secret,
        default_max_age_seconds=settings.qr_max_age_seconds,
        checked_in_by=request.checked_in_by,
    )
    await session.commit()
    return TransitionResponse.from_result(result)


@router.get(
    "/{mission_id}/qr-code",
    response_model=QRCodeResponse,
    dependencies=[Depends(qr_code_rate_limit)],
)
async def get_qr_code(
    mission_id: int,
    service: ServiceDep,
    event_id: Annotated[str | None, Query(alias="eventId")] = None,
) -> QRCodeResponse:
    """Get a freshly signed check-in payload for a QR_SCAN mission."""
    mission = await service.campaign_repo.get_mission(mission_id)
    if mission is None:
        raise NotFoundError(f"Mission {mission_id} not found")
    if mission.confirmation_type is not ConfirmationType.QR_SCAN:
        raise QRVerificationError(f"Mission {mission_id} does not use QR check-in")

    payload = generate_qr_payload(mission_id, get_settings().qr_secret, event_id=event_id)
    return QRCodeResponse(
        mission_id=payload.mission_id,
        event_id=payload.event_id,
        timestamp=payload.timestamp_ms,
        signature=payload.signature,
        data=payload.to_json(),
    )
