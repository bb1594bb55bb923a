"""Catalog search and media record routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from watchtogether.api.deps import get_catalog_client, get_db
from watchtogether.auth.middleware import Viewer, get_viewer
from watchtogether.responses import success_response
from watchtogether.schemas.media import GetOrCreateMediaRequest
from watchtogether.services import catalog as catalog_service
from watchtogether.services import media as media_service
from watchtogether.services.tmdb import TMDBClient

router = APIRouter()


@router.get("/search")
def search_catalog(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    client: Annotated[TMDBClient, Depends(get_catalog_client)],
    q: Annotated[str, Query(description="Search text (1-200 chars)")],
) -> dict:
    """Movie and TV matches for a query, served from cache for six hours."""
    result = catalog_service.search_catalog(db, client, q)
    return success_response([hit.model_dump(mode="json") for hit in result])


@router.post("/media")
def get_or_create_media(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: GetOrCreateMediaRequest,
    db: Annotated[Session, Depends(get_db)],
    client: Annotated[TMDBClient, Depends(get_catalog_client)],
) -> dict:
    """Return the stored record for a catalog id, fetching it on first use."""
    result = media_service.get_or_create_media(db, client, body.catalog_id, body.kind)
    return success_response(result.model_dump(mode="json"))


@router.get("/media/{media_id}")
def get_media(
    media_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = media_service.get_media(db, media_id)
    return success_response(result.model_dump(mode="json"))
