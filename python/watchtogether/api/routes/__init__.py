"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
"""

from fastapi import APIRouter

from watchtogether.api.routes.health import router as health_router
from watchtogether.api.routes.items import router as items_router
from watchtogether.api.routes.lists import router as lists_router
from watchtogether.api.routes.media import router as media_router
from watchtogether.api.routes.users import router as users_router


def create_api_router() -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(lists_router, tags=["lists"])
    api_router.include_router(items_router, tags=["items"])
    api_router.include_router(media_router, tags=["media"])
    api_router.include_router(users_router, tags=["users"])
    return api_router


__all__ = ["create_api_router"]
