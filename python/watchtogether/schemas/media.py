"""Catalog and media schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

MediaKindValue = Literal["movie", "tv"]


class GenreOut(BaseModel):
    id: int
    name: str


class SeasonOut(BaseModel):
    season_number: int
    episode_count: int | None = None
    air_date: str | None = None


class ProviderOut(BaseModel):
    """A streaming provider after duplicate-variant collapsing."""

    provider_id: int
    provider_name: str
    normalized_name: str
    logo_path: str | None = None
    display_priority: int | None = None


class MediaOut(BaseModel):
    """Response schema for a stored media record (raw catalog payload omitted)."""

    id: UUID
    catalog_id: int
    kind: MediaKindValue
    title: str
    poster_url: str | None = None
    backdrop_url: str | None = None
    release_date: str | None = None
    genres: list[GenreOut] = []
    overview: str | None = None
    tagline: str | None = None
    vote_average: float | None = None
    last_air_date: str | None = None
    total_seasons: int | None = None
    total_episodes: int | None = None
    seasons: list[SeasonOut] | None = None
    watch_providers: list[ProviderOut] | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MediaSummary(BaseModel):
    """A single catalog search hit."""

    catalog_id: int
    kind: MediaKindValue
    title: str
    poster_path: str | None = None
    release_date: str | None = None
    overview: str | None = None
    vote_average: float | None = None


class GetOrCreateMediaRequest(BaseModel):
    """Request body for resolving a catalog entry to a stored media record."""

    catalog_id: int = Field(..., description="Catalog (TMDB) id")
    kind: MediaKindValue
