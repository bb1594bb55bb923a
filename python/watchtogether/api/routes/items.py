"""List item tracking routes.

Routes are transport-only. Season routes take the season number from the
path; 0 is the specials season.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from watchtogether.api.deps import get_db
from watchtogether.auth.middleware import Viewer, get_viewer
from watchtogether.responses import success_response
from watchtogether.schemas.item import (
    SetDatesRequest,
    SetNotesRequest,
    SetPriorityRequest,
    SetRatingRequest,
    SetStatusRequest,
    SetTagsRequest,
)
from watchtogether.services import items as items_service
from watchtogether.services.changes import change_from_model

router = APIRouter()


@router.get("/items/{item_id}")
def get_item(
    item_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = items_service.get_item(db, viewer.subject, item_id)
    return success_response(result.model_dump(mode="json"))


@router.delete("/items/{item_id}", status_code=204)
def delete_item(
    item_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    items_service.delete_item(db, viewer.subject, item_id)
    return Response(status_code=204)


# =============================================================================
# Item fields
# =============================================================================


@router.put("/items/{item_id}/status")
def set_status(
    item_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetStatusRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Set a movie's status, or mark a TV show dropped."""
    result = items_service.set_status(db, viewer.subject, item_id, body.status)
    return success_response(result.model_dump(mode="json"))


@router.put("/items/{item_id}/rating")
def set_rating(
    item_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetRatingRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = items_service.set_rating(db, viewer.subject, item_id, body.rating)
    return success_response(result.model_dump(mode="json"))


@router.put("/items/{item_id}/notes")
def set_notes(
    item_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetNotesRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = items_service.set_notes(db, viewer.subject, item_id, body.notes)
    return success_response(result.model_dump(mode="json"))


@router.put("/items/{item_id}/priority")
def set_priority(
    item_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetPriorityRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = items_service.set_priority(db, viewer.subject, item_id, body.priority)
    return success_response(result.model_dump(mode="json"))


@router.put("/items/{item_id}/tags")
def set_tags(
    item_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetTagsRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = items_service.set_tags(db, viewer.subject, item_id, body.tags)
    return success_response(result.model_dump(mode="json"))


@router.put("/items/{item_id}/dates")
def set_dates(
    item_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetDatesRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Omitted fields are kept, null clears, a number (epoch ms) sets."""
    result = items_service.set_dates(
        db,
        viewer.subject,
        item_id,
        started_at=change_from_model(body, "started_at"),
        finished_at=change_from_model(body, "finished_at"),
    )
    return success_response(result.model_dump(mode="json"))


# =============================================================================
# Season fields (TV only)
# =============================================================================


@router.put("/items/{item_id}/seasons/{season_number}/status")
def set_season_status(
    item_id: UUID,
    season_number: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetStatusRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Set one season's status; the show status is recomputed."""
    result = items_service.set_season_status(
        db, viewer.subject, item_id, season_number, body.status
    )
    return success_response(result.model_dump(mode="json"))


@router.put("/items/{item_id}/seasons/{season_number}/rating")
def set_season_rating(
    item_id: UUID,
    season_number: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetRatingRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = items_service.set_season_rating(
        db, viewer.subject, item_id, season_number, body.rating
    )
    return success_response(result.model_dump(mode="json"))


@router.put("/items/{item_id}/seasons/{season_number}/notes")
def set_season_notes(
    item_id: UUID,
    season_number: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetNotesRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = items_service.set_season_notes(
        db, viewer.subject, item_id, season_number, body.notes
    )
    return success_response(result.model_dump(mode="json"))


@router.put("/items/{item_id}/seasons/{season_number}/dates")
def set_season_dates(
    item_id: UUID,
    season_number: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: SetDatesRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = items_service.set_season_dates(
        db,
        viewer.subject,
        item_id,
        season_number,
        started_at=change_from_model(body, "started_at"),
        finished_at=change_from_model(body, "finished_at"),
    )
    return success_response(result.model_dump(mode="json"))
