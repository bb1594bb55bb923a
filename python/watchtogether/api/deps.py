"""FastAPI dependencies for route handlers."""

from fastapi import Request

from watchtogether.db.session import get_db
from watchtogether.services.tmdb import TMDBClient

__all__ = ["get_db", "get_catalog_client"]


def get_catalog_client(request: Request) -> TMDBClient:
    """The shared catalog client, created in the app lifespan."""
    return request.app.state.catalog_client
