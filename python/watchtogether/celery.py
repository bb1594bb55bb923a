"""Celery application configuration.

Central configuration for Celery used by both API (for enqueuing)
and worker (for executing tasks).

Usage:
    from watchtogether.tasks import sweep_search_cache_job
    sweep_search_cache_job.apply_async(kwargs={"request_id": request_id})
"""

from celery import Celery

from watchtogether.config import get_settings

settings = get_settings()

celery_app = Celery("watchtogether")

celery_app.conf.broker_url = settings.effective_celery_broker_url
celery_app.conf.result_backend = settings.effective_celery_result_backend

celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True

celery_app.conf.task_default_queue = "default"
celery_app.conf.task_always_eager = False

# Hourly sweep in addition to the sweep scheduled after each cache miss
celery_app.conf.beat_schedule = {
    "sweep-search-cache-hourly": {
        "task": "sweep_search_cache",
        "schedule": 3600.0,
    },
}


def get_celery_app() -> Celery:
    return celery_app
