"""List and roster routes.

Routes are transport-only:
- Extract the viewer from request.state
- Call exactly one service function
- Return success(...) or raise ApiError

No domain logic or raw DB access in routes.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from watchtogether import limits
from watchtogether.api.deps import get_db
from watchtogether.auth.middleware import Viewer, get_viewer
from watchtogether.responses import success_response
from watchtogether.schemas.item import AddItemRequest
from watchtogether.schemas.list import (
    AddMemberRequest,
    CreateListRequest,
    SortValue,
    UpdateListRequest,
    UpdateMemberRoleRequest,
)
from watchtogether.services import items as items_service
from watchtogether.services import lists as lists_service
from watchtogether.services.changes import change_from_model

router = APIRouter()


# =============================================================================
# Lists
# =============================================================================


@router.get("/lists")
def list_lists(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Lists the viewer owns or is a member of, most recently updated first."""
    result = lists_service.lists_visible_to(db, viewer.subject)
    return success_response([lst.model_dump(mode="json") for lst in result])


@router.post("/lists", status_code=201)
def create_list(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: CreateListRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = lists_service.create_list(db, viewer.subject, body.name, body.description)
    return success_response(result.model_dump(mode="json"))


@router.get("/lists/{list_id}")
def get_list(
    list_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = lists_service.get_list(db, viewer.subject, list_id)
    return success_response(result.model_dump(mode="json"))


@router.patch("/lists/{list_id}")
def update_list(
    list_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: UpdateListRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Update name, description or default sort. Creator or admin only."""
    result = lists_service.update_list(
        db,
        viewer.subject,
        list_id,
        name=body.name,
        description=change_from_model(body, "description"),
        default_sort=body.default_sort,
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/lists/{list_id}", status_code=204)
def delete_list(
    list_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete a list with all its items. Creator only."""
    lists_service.delete_list(db, viewer.subject, list_id)
    return Response(status_code=204)


# =============================================================================
# Roster
# =============================================================================


@router.get("/lists/{list_id}/members")
def list_members(
    list_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = lists_service.list_members(db, viewer.subject, list_id)
    return success_response(result.model_dump(mode="json"))


@router.post("/lists/{list_id}/members", status_code=201)
def add_member(
    list_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: AddMemberRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = lists_service.add_member(db, viewer.subject, list_id, body.subject, body.role)
    return success_response(result.model_dump(mode="json"))


@router.patch("/lists/{list_id}/members/{member_subject}")
def update_member_role(
    list_id: UUID,
    member_subject: str,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: UpdateMemberRoleRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = lists_service.update_member_role(
        db, viewer.subject, list_id, member_subject, body.role
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/lists/{list_id}/members/{member_subject}", status_code=204)
def remove_member(
    list_id: UUID,
    member_subject: str,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    lists_service.remove_member(db, viewer.subject, list_id, member_subject)
    return Response(status_code=204)


# =============================================================================
# Items of a list
# =============================================================================


@router.get("/lists/{list_id}/items")
def get_items(
    list_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    sort: Annotated[SortValue | None, Query(description="Overrides the list default")] = None,
    limit: Annotated[
        int, Query(ge=1, description="Maximum results (clamped to 200)")
    ] = limits.ITEMS_PAGE_DEFAULT,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict:
    result = items_service.get_items(
        db, viewer.subject, list_id, sort=sort, limit=limit, offset=offset
    )
    return success_response([item.model_dump(mode="json") for item in result])


@router.post("/lists/{list_id}/items", status_code=201)
def add_item(
    list_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    body: AddItemRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Add a stored media record to the list. 409 if it is already there."""
    result = items_service.add_item(db, viewer.subject, list_id, body.media_id, body.status)
    return success_response(result.model_dump(mode="json"))


@router.get("/lists/{list_id}/export")
def export_list(
    list_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = items_service.export_list_items(db, viewer.subject, list_id)
    return success_response(result.model_dump(mode="json"))
