"""Catalog search with a TTL cache in front of the external catalog.

Cache rules:
- Key is the trimmed, lowercased query.
- An entry is served only while now < expires_at.
- A miss fetches from the catalog, upserts the entry with a fresh expiry,
  then schedules a background sweep of expired entries. Scheduling is
  fire-and-forget: it never blocks the caller and its failures are logged
  and discarded.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from watchtogether import limits
from watchtogether.config import Environment, get_settings
from watchtogether.db.models import MediaKind, SearchCacheEntry
from watchtogether.db.session import transaction
from watchtogether.errors import ApiErrorCode, InvalidRequestError
from watchtogether.logging import get_logger, get_request_id
from watchtogether.schemas.media import MediaSummary
from watchtogether.services.tmdb import TMDBClient

logger = get_logger(__name__)

CleanupHook = Callable[[], Any]


def normalize_query(query: str) -> str:
    normalized = (query or "").strip().lower()
    if not normalized:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Search query is required")
    if len(normalized) > limits.SEARCH_QUERY_MAX:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST,
            f"Search query must be at most {limits.SEARCH_QUERY_MAX} characters",
        )
    return normalized


def to_summaries(results: list[dict[str, Any]]) -> list[MediaSummary]:
    """Project raw multi-search hits onto movie/TV summaries (people are dropped)."""
    kinds = {MediaKind.movie.value, MediaKind.tv.value}
    summaries = []
    for hit in results:
        kind = hit.get("media_type")
        if kind not in kinds or hit.get("id") is None:
            continue
        summaries.append(
            MediaSummary(
                catalog_id=hit["id"],
                kind=kind,
                title=hit.get("title") or hit.get("name") or "",
                poster_path=hit.get("poster_path"),
                release_date=hit.get("release_date") or hit.get("first_air_date") or None,
                overview=hit.get("overview") or None,
                vote_average=hit.get("vote_average"),
            )
        )
    return summaries


def enqueue_cache_sweep() -> bool:
    """Best-effort enqueue of the expired-entry sweep.

    Never raises. Returns True if dispatch succeeded, False otherwise.
    In test env, skips dispatch and returns False.
    """
    settings = get_settings()
    if settings.app_env == Environment.TEST:
        logger.debug("cache_sweep_enqueue_skipped", reason="test_environment")
        return False

    try:
        from watchtogether.tasks.sweep_search_cache import sweep_search_cache_job

        request_id = get_request_id()
        kwargs = {"request_id": request_id} if request_id else {}
        # Fail fast when the broker is down
        sweep_search_cache_job.apply_async(kwargs=kwargs, retry=False)
        logger.debug("cache_sweep_enqueued")
        return True
    except Exception as e:
        logger.warning("cache_sweep_enqueue_failed", error=str(e))
        return False


def _schedule_cleanup(hook: CleanupHook) -> None:
    try:
        hook()
    except Exception as e:
        logger.warning("cache_cleanup_schedule_failed", error=str(e))


def _store(db: Session, query: str, results: list, expires_at: datetime) -> None:
    entry = db.scalar(select(SearchCacheEntry).where(SearchCacheEntry.query == query))
    try:
        with transaction(db):
            if entry is None:
                db.add(SearchCacheEntry(query=query, results=results, expires_at=expires_at))
            else:
                entry.results = list(results)
                entry.expires_at = expires_at
    except IntegrityError:
        # Concurrent miss stored the same query; its results are just as fresh
        logger.debug("search_cache_store_raced")


def search_catalog(
    db: Session,
    client: TMDBClient,
    query: str,
    *,
    now: datetime | None = None,
    ttl_s: int | None = None,
    schedule_cleanup: CleanupHook | None = None,
) -> list[MediaSummary]:
    """Search the catalog through the cache.

    Raises:
        InvalidRequestError: If the query is blank or too long.
        UpstreamError: If the catalog is unavailable on a cache miss.
    """
    key = normalize_query(query)
    if now is None:
        now = datetime.now(UTC)
    if ttl_s is None:
        ttl_s = get_settings().search_cache_ttl_s

    entry = db.scalar(select(SearchCacheEntry).where(SearchCacheEntry.query == key))
    if entry is not None and now < entry.expires_at:
        logger.debug("search_cache_hit")
        return to_summaries(entry.results)

    results = client.search_multi(key)
    _store(db, key, results, now + timedelta(seconds=ttl_s))
    logger.info("search_cache_miss", result_count=len(results))

    _schedule_cleanup(schedule_cleanup or enqueue_cache_sweep)
    return to_summaries(results)


def sweep_expired_entries(db: Session, now: datetime | None = None) -> int:
    """Delete every entry whose expiry has passed. Returns the count removed."""
    if now is None:
        now = datetime.now(UTC)
    with transaction(db):
        result = db.execute(delete(SearchCacheEntry).where(SearchCacheEntry.expires_at < now))
    return result.rowcount
