"""Expired search-cache sweeper.

Runs after every cache miss (fire-and-forget from the API) and hourly from
celery beat. Deletes every cache entry whose expires_at has passed.
"""

from datetime import datetime

from watchtogether.celery import celery_app
from watchtogether.db.session import get_session_factory
from watchtogether.logging import clear_task_context, configure_task_logging, get_logger
from watchtogether.services.catalog import sweep_expired_entries

logger = get_logger(__name__)


def sweep_search_cache(now: datetime | None = None) -> int:
    """Delete expired search cache entries.

    Returns:
        Number of entries removed (0 on failure).
    """
    session_factory = get_session_factory()
    db = session_factory()

    try:
        removed = sweep_expired_entries(db, now=now)
        if removed > 0:
            logger.info("search_cache_swept", removed_count=removed)
        return removed
    except Exception as e:
        logger.error("sweeper_error", error=str(e))
        db.rollback()
        return 0
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=0, name="sweep_search_cache")
def sweep_search_cache_job(self, request_id: str | None = None) -> dict:
    configure_task_logging(
        request_id=request_id, task_name="sweep_search_cache", task_id=self.request.id
    )
    try:
        return {"removed": sweep_search_cache()}
    finally:
        clear_task_context()
