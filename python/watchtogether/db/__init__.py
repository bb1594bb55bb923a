"""Database module for WatchTogether.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from watchtogether.db.engine import create_db_engine, get_engine
from watchtogether.db.models import (
    Base,
    ListItem,
    ListMember,
    MediaKind,
    MediaRecord,
    SearchCacheEntry,
    SortOrder,
    User,
    WatchList,
    WatchStatus,
)
from watchtogether.db.session import get_db, init_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "init_db",
    "transaction",
    # Base
    "Base",
    # Enums
    "MediaKind",
    "SortOrder",
    "WatchStatus",
    # Models
    "User",
    "WatchList",
    "ListMember",
    "MediaRecord",
    "ListItem",
    "SearchCacheEntry",
]
