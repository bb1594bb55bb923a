"""List item schemas.

Contains request and response models for item tracking endpoints.
Dates are epoch milliseconds.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from watchtogether.schemas.media import MediaOut

WatchStatusValue = Literal["to_watch", "watching", "watched", "dropped"]
PriorityValue = Literal["low", "medium", "high"]

# =============================================================================
# Request Schemas
# =============================================================================


class AddItemRequest(BaseModel):
    """Request body for adding a media record to a list."""

    media_id: UUID
    status: WatchStatusValue = "to_watch"


class SetStatusRequest(BaseModel):
    status: WatchStatusValue


class SetRatingRequest(BaseModel):
    """null clears the rating."""

    rating: int | None


class SetNotesRequest(BaseModel):
    """null (or blank after sanitizing) clears the notes."""

    notes: str | None


class SetPriorityRequest(BaseModel):
    priority: PriorityValue | None


class SetTagsRequest(BaseModel):
    tags: list[str] | None


class SetDatesRequest(BaseModel):
    """Tri-state date update.

    A field omitted from the body is left unchanged, an explicit null clears
    the stored value, and a number sets it.
    """

    started_at: int | None = Field(default=None, description="Epoch ms")
    finished_at: int | None = Field(default=None, description="Epoch ms")


# =============================================================================
# Response Schemas
# =============================================================================


class SeasonProgressOut(BaseModel):
    season_number: int
    status: WatchStatusValue
    rating: int | None = None
    notes: str | None = None
    started_at: int | None = None
    finished_at: int | None = None


class ListItemOut(BaseModel):
    """A list item with its media record joined.

    `status` is the stored status (derived from season progress for TV).
    `display_status` is the presentation status for TV items, computed
    over aired seasons only; for movies it equals `status`.
    """

    id: UUID
    list_id: UUID
    media_id: UUID
    status: WatchStatusValue
    display_status: WatchStatusValue
    rating: int | None = None
    notes: str | None = None
    priority: PriorityValue | None = None
    tags: list[str] | None = None
    started_at: int | None = None
    finished_at: int | None = None
    season_progress: list[SeasonProgressOut] | None = None
    created_at: datetime
    media: MediaOut

    model_config = ConfigDict(from_attributes=True)


class ExportItemOut(BaseModel):
    """Flat per-item projection consumed by CSV/JSON exporters."""

    title: str
    kind: str
    status: WatchStatusValue
    rating: int | None = None
    priority: PriorityValue | None = None
    tags: str | None = None
    started_at: int | None = None
    finished_at: int | None = None
    notes: str | None = None
    release_date: str | None = None
    genres: str | None = None
    total_seasons: int | None = None
    total_episodes: int | None = None


class ExportOut(BaseModel):
    list_name: str
    exported_at: datetime
    items: list[ExportItemOut]
