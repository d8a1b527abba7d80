"""User API endpoints: notifications and rank progress."""

import logging
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from missionflow.api.dependencies import ServiceDep, SessionDep, UserRepoDep
from missionflow.api.schemas import RankResponse
from missionflow.db.models import UserNotification
from missionflow.progression.errors import NotFoundError
from missionflow.progression.ranks import check_rank, rank_progress

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


# Request/response models


class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    message: str
    metadata: dict[str, Any]
    is_read: bool = Field(alias="isRead")
    created_at: datetime = Field(alias="createdAt")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_row(cls, row: UserNotification) -> "NotificationResponse":
        return cls(
            id=row.id,
            type=row.kind,
            title=row.title,
            message=row.message,
            metadata=row.details or {},
            is_read=row.is_read,
            created_at=row.created_at,
        )


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int = Field(alias="unreadCount")

    model_config = {"populate_by_name": True}


class MarkReadRequest(BaseModel):
    """Either a list of notification IDs or markAllAsRead."""

    notification_ids: list[int] | None = Field(default=None, alias="notificationIds")
    mark_all_as_read: bool = Field(default=False, alias="markAllAsRead")

    model_config = {"populate_by_name": True}


class MarkReadResponse(BaseModel):
    success: bool
    updated_count: int = Field(alias="updatedCount")

    model_config = {"populate_by_name": True}


class LadderRankResponse(RankResponse):
    """A rank on the ladder with the user's status for it."""

    is_unlocked: bool = Field(alias="isUnlocked")
    is_current: bool = Field(alias="isCurrent")
    can_unlock: bool = Field(alias="canUnlock")


class RankStandingResponse(BaseModel):
    experience: int
    missions_completed: int = Field(alias="missionsCompleted")
    competencies: dict[str, int]
    next_rank_experience: int = Field(alias="nextRankExperience")
    next_rank_missions: int = Field(alias="nextRankMissions")
    progress_percentage: float = Field(alias="progressPercentage")

    model_config = {"populate_by_name": True}


class RankProgressResponse(BaseModel):
    """Where a user stands on the rank ladder."""

    current_rank: RankResponse | None = Field(alias="currentRank")
    next_rank: RankResponse | None = Field(alias="nextRank")
    progress: RankStandingResponse
    is_ready_for_promotion: bool = Field(alias="isReadyForPromotion")
    missing_requirements: list[str] = Field(alias="missingRequirements")
    campaign_id: int | None = Field(default=None, alias="campaignId")
    is_custom_ranks: bool = Field(alias="isCustomRanks")
    all_ranks: list[LadderRankResponse] = Field(alias="allRanks")

    model_config = {"populate_by_name": True}


# Endpoints


@router.get("/{user_id}/notifications", response_model=NotificationListResponse)
async def list_notifications(
    user_id: int,
    users: UserRepoDep,
    unread: bool = False,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> NotificationListResponse:
    """Get the user's newest notifications and their unread count."""
    if not await users.exists(user_id):
        raise NotFoundError(f"User {user_id} not found")

    notifications = await users.list_notifications(user_id, unread_only=unread, limit=limit)
    return NotificationListResponse(
        notifications=[NotificationResponse.from_row(n) for n in notifications],
        unread_count=await users.count_unread_notifications(user_id),
    )


@router.patch("/{user_id}/notifications", response_model=MarkReadResponse)
async def mark_notifications_read(
    user_id: int,
    request: MarkReadRequest,
    users: UserRepoDep,
    session: SessionDep,
) -> MarkReadResponse:
    """Mark some or all of the user's notifications as read."""
    if not request.mark_all_as_read and request.notification_ids is None:
        raise HTTPException(
            status_code=400,
            detail="Either notificationIds or markAllAsRead must be provided",
        )

    ids = None if request.mark_all_as_read else request.notification_ids
    updated = await users.mark_notifications_read(user_id, ids)
    await session.commit()
    return MarkReadResponse(success=True, updated_count=updated)


@router.get("/{user_id}/rank-progress", response_model=RankProgressResponse)
async def get_rank_progress(
    user_id: int,
    service: ServiceDep,
    campaign_id: Annotated[int | None, Query(alias="campaignId")] = None,
) -> RankProgressResponse:
    """Get the user's current and next rank and what is still missing.

    With campaignId the campaign's own ladder and theme are used when it
    has them.
    """
    theme = await service.get_theme(campaign_id) if campaign_id is not None else None
    standing = await service.store.get_standing(user_id)
    if standing is None:
        raise NotFoundError(f"User {user_id} not found")

    ranks = await service.store.list_ranks(campaign_id)
    progress = rank_progress(ranks, standing, campaign_id=campaign_id, theme=theme)

    return RankProgressResponse(
        current_rank=RankResponse.from_rank(progress.current) if progress.current else None,
        next_rank=RankResponse.from_rank(progress.next) if progress.next else None,
        progress=RankStandingResponse(
            experience=standing.experience,
            missions_completed=standing.missions_completed,
            competencies=standing.competencies,
            next_rank_experience=progress.next.min_experience if progress.next else 0,
            next_rank_missions=progress.next.min_missions if progress.next else 0,
            progress_percentage=progress.percentage,
        ),
        is_ready_for_promotion=progress.ready_for_promotion,
        missing_requirements=progress.next_check.missing if progress.next_check else [],
        campaign_id=campaign_id,
        is_custom_ranks=progress.custom,
        all_ranks=[
            LadderRankResponse(
                **RankResponse.from_rank(rank).model_dump(),
                is_unlocked=rank.level <= standing.current_rank,
                is_current=rank.level == standing.current_rank,
                can_unlock=check_rank(rank, standing, theme).eligible,
            )
            for rank in progress.ladder
        ],
    )
