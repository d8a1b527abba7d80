"""Database repositories."""

from missionflow.db.repositories.campaigns import CampaignRepository
from missionflow.db.repositories.progress import SqlProgressStore
from missionflow.db.repositories.users import UserRepository

__all__ = [
    "CampaignRepository",
    "SqlProgressStore",
    "UserRepository",
]
