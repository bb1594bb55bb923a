"""Business logic services.

This module contains service-layer functions that implement business logic.
Services are called by route handlers and orchestrate database operations.
"""

from watchtogether.services.lists import lists_visible_to
from watchtogether.services.media import get_or_create_media
from watchtogether.services.users import upsert_user

__all__ = [
    "get_or_create_media",
    "lists_visible_to",
    "upsert_user",
]
