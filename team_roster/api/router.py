"""API router aggregation."""

from fastapi import APIRouter

from team_roster.api.health import router as health_router
from team_roster.api.members import router as members_router
from team_roster.api.tasks import router as tasks_router

api_router = APIRouter()
api_router.include_router(health_router)
# Member search and training status
api_router.include_router(members_router)
# On-demand tasks (membership report)
api_router.include_router(tasks_router)
