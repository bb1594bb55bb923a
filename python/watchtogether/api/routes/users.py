"""Identity directory routes.

/users/* is called by signed-in viewers. /internal/users/* is called by
the identity provider's sync webhook and is guarded by the internal secret
in the auth middleware instead of a bearer token.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from watchtogether.api.deps import get_db
from watchtogether.auth.middleware import Viewer, get_viewer
from watchtogether.responses import success_response
from watchtogether.schemas.user import UpsertUserRequest
from watchtogether.services import users as users_service

router = APIRouter()


@router.get("/users/me")
def get_me(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = users_service.get_user(db, viewer.subject)
    return success_response(result.model_dump(mode="json"))


@router.get("/users/search")
def search_users(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    email: Annotated[str, Query(description="Email prefix")],
) -> dict:
    """Users whose email starts with the prefix, excluding the viewer."""
    result = users_service.search_users(db, email, exclude_subject=viewer.subject)
    return success_response([user.model_dump(mode="json") for user in result])


# =============================================================================
# Identity sync (internal)
# =============================================================================


@router.put("/internal/users/{subject}")
def upsert_user(
    subject: str,
    body: UpsertUserRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = users_service.upsert_user(
        db, subject, body.email, display_name=body.display_name, avatar_url=body.avatar_url
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/internal/users/{subject}", status_code=204)
def delete_user(
    subject: str,
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Idempotent: deleting an unknown subject is a no-op."""
    users_service.delete_user(db, subject)
    return Response(status_code=204)
