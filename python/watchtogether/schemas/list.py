"""List registry schemas.

Contains request and response models for list and roster endpoints.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

ListRoleValue = Literal["creator", "admin", "viewer"]
MemberRoleValue = Literal["admin", "viewer"]
SortValue = Literal["added", "release", "rating", "alpha"]

__all__ = [
    "ListRoleValue",
    "MemberRoleValue",
    "SortValue",
    "CreateListRequest",
    "UpdateListRequest",
    "AddMemberRequest",
    "UpdateMemberRoleRequest",
    "ListOut",
    "MemberOut",
    "ListMembersOut",
]

# =============================================================================
# Request Schemas
# =============================================================================


class CreateListRequest(BaseModel):
    """Request body for creating a list.

    Lengths are enforced after HTML stripping by the validation layer.
    """

    name: str = Field(..., description="List name (1-100 chars)")
    description: str | None = Field(default=None, description="Optional description (<= 500 chars)")


class UpdateListRequest(BaseModel):
    """Request body for updating a list.

    Omitted fields are left unchanged. An explicit null (or blank)
    description clears it.
    """

    name: str | None = None
    description: str | None = None
    default_sort: SortValue | None = None


class AddMemberRequest(BaseModel):
    """Request body for adding a member to a list."""

    subject: str = Field(..., min_length=1, description="Identity-provider subject of the member")
    role: MemberRoleValue = "viewer"


class UpdateMemberRoleRequest(BaseModel):
    """Request body for changing a member's role."""

    role: MemberRoleValue


# =============================================================================
# Response Schemas
# =============================================================================


class ListOut(BaseModel):
    """Response schema for a list.

    `role` is the viewer's role on this list, not a property of the list.
    """

    id: UUID
    name: str
    description: str | None = None
    owner_subject: str
    default_sort: SortValue
    role: ListRoleValue
    member_count: int
    created_at: datetime
    updated_at: datetime


class MemberOut(BaseModel):
    """A roster entry resolved against the identity directory."""

    subject: str
    role: ListRoleValue
    email: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ListMembersOut(BaseModel):
    """Owner plus members that have a directory record."""

    owner: MemberOut
    members: list[MemberOut]
