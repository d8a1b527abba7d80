"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from missionflow.campaign.service import CampaignService
from missionflow.db.repositories.campaigns import CampaignRepository
from missionflow.db.repositories.progress import SqlProgressStore
from missionflow.db.repositories.users import UserRepository
from missionflow.db.session import get_db_session


async def get_campaign_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> CampaignService:
    """Campaign service bound to the request's session."""
    return CampaignService(CampaignRepository(session), SqlProgressStore(session))


async def get_user_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> UserRepository:
    return UserRepository(session)


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
ServiceDep = Annotated[CampaignService, Depends(get_campaign_service)]
UserRepoDep = Annotated[UserRepository, Depends(get_user_repository)]
