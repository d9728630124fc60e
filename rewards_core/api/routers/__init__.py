"""Router registrations."""

from fastapi import APIRouter

from rewards_core.api.routers import admin, health, rewards, scheduled


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router, tags=["health"])
    router.include_router(rewards.router, prefix="/api/v1/rewards", tags=["rewards"])
    router.include_router(scheduled.router, prefix="/api/v1/scheduled", tags=["scheduled"])
    router.include_router(admin.router, prefix="/api/v1/admin", tags=["admin"])
    return router
