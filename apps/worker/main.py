"""Celery worker entrypoint.

Run with:
    celery -A apps.worker.main:celery_app worker --loglevel=info
    celery -A apps.worker.main:celery_app beat --loglevel=info

Tasks are registered by explicit import - no autodiscovery.
Tasks accept `request_id: str | None = None` for log correlation with the
API request that enqueued them.
"""

from celery.signals import worker_process_init

from watchtogether.celery import celery_app
from watchtogether.logging import configure_logging, get_logger

# Import tasks to register them with the celery_app
from watchtogether.tasks import sweep_search_cache_job  # noqa: F401


@worker_process_init.connect
def setup_worker_logging(**kwargs):
    """Configure structlog when a worker process starts."""
    configure_logging()
    logger = get_logger(__name__)
    logger.info("celery_worker_started")


__all__ = ["celery_app"]
