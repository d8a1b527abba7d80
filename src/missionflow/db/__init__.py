"""Database layer."""

from missionflow.db.models import Base
from missionflow.db.repositories import CampaignRepository, SqlProgressStore, UserRepository
from missionflow.db.session import async_session_factory, get_db_session, get_session

__all__ = [
    "Base",
    "CampaignRepository",
    "SqlProgressStore",
    "UserRepository",
    "async_session_factory",
    "get_db_session",
    "get_session",
]
