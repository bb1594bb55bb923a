"""Media record service.

One stored media record per catalog id, created lazily the first time a
catalog entry is referenced and never refreshed afterwards.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from watchtogether.config import get_settings
from watchtogether.db.models import MediaKind, MediaRecord
from watchtogether.db.session import insert_or_reread
from watchtogether.errors import ApiErrorCode, InvalidRequestError, NotFoundError, UpstreamError
from watchtogether.logging import get_logger
from watchtogether.schemas.media import MediaOut
from watchtogether.services.providers import dedupe_providers
from watchtogether.services.tmdb import TMDBClient
from watchtogether.services.validation import validate_positive_int

logger = get_logger(__name__)

POSTER_SIZE = "w342"
BACKDROP_SIZE = "w780"


def validate_kind(kind: str) -> str:
    try:
        return MediaKind(kind).value
    except ValueError as e:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_KIND, "Kind must be 'movie' or 'tv'"
        ) from e


def _non_blank(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _image_url(base_url: str, size: str, path: str | None) -> str | None:
    if not path:
        return None
    return f"{base_url.rstrip('/')}/{size}{path}"


def extract_providers(payload: dict | None, region: str) -> list[dict] | None:
    """Flatrate (subscription) providers of one region, or None."""
    if not payload:
        return None
    flatrate = ((payload.get("results") or {}).get(region) or {}).get("flatrate")
    if not flatrate:
        return None
    return [
        {
            "provider_id": provider.get("provider_id"),
            "provider_name": provider.get("provider_name"),
            "logo_path": provider.get("logo_path") or None,
            "display_priority": provider.get("display_priority"),
        }
        for provider in flatrate
    ]


def normalize_media(
    catalog_id: int,
    kind: str,
    detail: dict[str, Any],
    providers_payload: dict | None,
    *,
    region: str,
    image_base_url: str,
) -> dict[str, Any]:
    """Map a catalog detail payload onto MediaRecord column values.

    - seasons numbered 0 (specials) are dropped
    - total_episodes is summed over the remaining seasons
    - blank overview / tagline become None
    - last_air_date is kept for TV only
    """
    seasons = None
    total_seasons = None
    total_episodes = None

    if kind == MediaKind.tv.value and detail.get("seasons"):
        actual = [s for s in detail["seasons"] if (s.get("season_number") or 0) > 0]
        total_seasons = detail.get("number_of_seasons")
        if total_seasons is None:
            total_seasons = len(actual)
        total_episodes = sum(s.get("episode_count") or 0 for s in actual)
        seasons = [
            {
                "season_number": s["season_number"],
                "episode_count": s.get("episode_count"),
                "air_date": s.get("air_date") or None,
            }
            for s in actual
        ]

    genres = [{"id": g.get("id"), "name": g.get("name")} for g in detail.get("genres") or []]

    return {
        "catalog_id": catalog_id,
        "kind": kind,
        "title": detail.get("title") or detail.get("name") or "",
        "poster_url": _image_url(image_base_url, POSTER_SIZE, detail.get("poster_path")),
        "backdrop_url": _image_url(image_base_url, BACKDROP_SIZE, detail.get("backdrop_path")),
        "release_date": detail.get("release_date") or detail.get("first_air_date") or None,
        "genres": genres,
        "overview": _non_blank(detail.get("overview")),
        "tagline": _non_blank(detail.get("tagline")),
        "vote_average": detail.get("vote_average"),
        "last_air_date": (detail.get("last_air_date") or None)
        if kind == MediaKind.tv.value
        else None,
        "total_seasons": total_seasons,
        "total_episodes": total_episodes,
        "seasons": seasons,
        "watch_providers": extract_providers(providers_payload, region),
        "raw_catalog_payload": detail,
    }


def _find_by_catalog_id(db: Session, catalog_id: int) -> MediaRecord | None:
    return db.scalar(select(MediaRecord).where(MediaRecord.catalog_id == catalog_id))


def get_or_create_media(
    db: Session,
    client: TMDBClient,
    catalog_id: int,
    kind: str,
    *,
    region: str | None = None,
    image_base_url: str | None = None,
) -> MediaOut:
    """Return the stored record for a catalog id, creating it on first use.

    Lookup is by catalog id only. On a miss the detail fetch is fatal
    (UpstreamError propagates) but the provider fetch is not: the record is
    created without providers.
    """
    catalog_id = validate_positive_int(catalog_id, "Catalog id")
    kind = validate_kind(kind)

    existing = _find_by_catalog_id(db, catalog_id)
    if existing is not None:
        return media_out(existing)

    settings = get_settings()
    if region is None:
        region = settings.tmdb_watch_region
    if image_base_url is None:
        image_base_url = settings.tmdb_image_base_url

    detail = client.fetch_detail(catalog_id, kind)

    providers_payload = None
    try:
        providers_payload = client.fetch_watch_providers(catalog_id, kind)
    except UpstreamError as e:
        logger.info("watch_providers_unavailable", catalog_id=catalog_id, error=e.message)

    values = normalize_media(
        catalog_id,
        kind,
        detail,
        providers_payload,
        region=region,
        image_base_url=image_base_url,
    )

    record, created = insert_or_reread(
        db, MediaRecord(**values), lambda: _find_by_catalog_id(db, catalog_id)
    )
    if created:
        logger.info("media_created", media_id=str(record.id), catalog_id=catalog_id, kind=kind)
    return media_out(record)


def get_media(db: Session, media_id: UUID) -> MediaOut:
    media = db.get(MediaRecord, media_id)
    if media is None:
        raise NotFoundError(ApiErrorCode.E_MEDIA_NOT_FOUND, "Media not found")
    return media_out(media)


def media_out(media: MediaRecord) -> MediaOut:
    """Project a stored record for the API, collapsing duplicate providers."""
    providers = media.watch_providers
    return MediaOut(
        id=media.id,
        catalog_id=media.catalog_id,
        kind=media.kind,
        title=media.title,
        poster_url=media.poster_url,
        backdrop_url=media.backdrop_url,
        release_date=media.release_date,
        genres=media.genres or [],
        overview=media.overview,
        tagline=media.tagline,
        vote_average=media.vote_average,
        last_air_date=media.last_air_date,
        total_seasons=media.total_seasons,
        total_episodes=media.total_episodes,
        seasons=media.seasons,
        watch_providers=dedupe_providers(providers) if providers is not None else None,
        created_at=media.created_at,
    )
