"""Celery tasks for WatchTogether.

Tasks are explicitly imported here to register them with Celery.
No autodiscovery - all tasks must be imported in this module.

Usage in worker:
    from watchtogether.tasks import sweep_search_cache_job
"""

from watchtogether.tasks.sweep_search_cache import sweep_search_cache_job

__all__ = ["sweep_search_cache_job"]
