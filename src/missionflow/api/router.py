"""Main API router."""

from fastapi import APIRouter

from missionflow.api.campaigns import router as campaigns_router
from missionflow.api.missions import router as missions_router
from missionflow.api.users import router as users_router

api_router = APIRouter()
api_router.include_router(campaigns_router)
api_router.include_router(missions_router)
api_router.include_router(users_router)
