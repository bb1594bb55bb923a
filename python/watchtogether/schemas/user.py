"""Identity directory schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UpsertUserRequest(BaseModel):
    """Request body for an identity sync event (create or update)."""

    email: str = Field(..., description="Primary email address")
    display_name: str | None = Field(default=None, description="Full name, if known")
    avatar_url: str | None = Field(default=None, description="Profile image URL")


class UserOut(BaseModel):
    """Response schema for a directory record."""

    id: UUID
    external_subject: str
    email: str
    display_name: str | None = None
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)
