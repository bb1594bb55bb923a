"""SQLAlchemy ORM models for WatchTogether.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Column types are portable (Uuid, JSON, timezone-aware timestamps) so the
same models run on PostgreSQL and on SQLite in tests.

Enum-valued columns are stored as text with CHECK constraints; the Python
enums below are the single source of their allowed values.
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utcnow() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always reads back as UTC.

    SQLite drops tzinfo on storage; values are normalized to UTC on write
    and re-attached on read.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


# =============================================================================
# Enums
# =============================================================================


class MediaKind(str, PyEnum):
    """Catalog entry kinds."""

    movie = "movie"
    tv = "tv"


class WatchStatus(str, PyEnum):
    """Watch status of a list item or a single season."""

    to_watch = "to_watch"
    watching = "watching"
    watched = "watched"
    dropped = "dropped"


class Priority(str, PyEnum):
    low = "low"
    medium = "medium"
    high = "high"


class SortOrder(str, PyEnum):
    """List default sort preference.

    added: insertion order
    release: newest release first
    rating: highest rating first, unrated last
    alpha: title A-Z
    """

    added = "added"
    release = "release"
    rating = "rating"
    alpha = "alpha"


class MemberRole(str, PyEnum):
    """Stored member roles. The owner's implicit creator role is never stored."""

    admin = "admin"
    viewer = "viewer"


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """Directory record for an identity-provider subject."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    external_subject: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    email_normalized: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class WatchList(Base):
    """A shared watch-list. The owner holds the implicit creator role."""

    __tablename__ = "lists"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_subject: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    default_sort: Mapped[str] = mapped_column(
        Text, default=SortOrder.added.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "default_sort IN ('added', 'release', 'rating', 'alpha')",
            name="ck_lists_default_sort",
        ),
    )

    # Relationships
    members: Mapped[list["ListMember"]] = relationship(
        "ListMember",
        back_populates="watch_list",
        cascade="all, delete-orphan",
        order_by="ListMember.position",
    )
    items: Mapped[list["ListItem"]] = relationship(
        "ListItem", back_populates="watch_list", cascade="all, delete-orphan"
    )

    def touch(self) -> None:
        """Bump updated_at for any mutation of the list, its roster or its items."""
        self.updated_at = utcnow()


class ListMember(Base):
    """Roster entry of a list (ordered by position)."""

    __tablename__ = "list_members"

    list_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("lists.id", ondelete="CASCADE"), primary_key=True
    )
    subject: Mapped[str] = mapped_column(Text, primary_key=True)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'viewer')", name="ck_list_members_role"),
        Index("ix_list_members_subject", "subject"),
    )

    watch_list: Mapped["WatchList"] = relationship("WatchList", back_populates="members")


class MediaRecord(Base):
    """Normalized catalog entry; one row per catalog id, immutable once created."""

    __tablename__ = "media"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    catalog_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    poster_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    backdrop_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    release_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    genres: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    overview: Mapped[str | None] = mapped_column(Text, nullable=True)
    tagline: Mapped[str | None] = mapped_column(Text, nullable=True)
    vote_average: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_air_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_seasons: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_episodes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # [{season_number, episode_count, air_date}]
    seasons: Mapped[list | None] = mapped_column(JSON, nullable=True)
    # [{provider_id, provider_name, logo_path, display_priority}]
    watch_providers: Mapped[list | None] = mapped_column(JSON, nullable=True)
    raw_catalog_payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (CheckConstraint("kind IN ('movie', 'tv')", name="ck_media_kind"),)


class ListItem(Base):
    """A media entry on a list with its tracking state.

    started_at / finished_at are epoch milliseconds. season_progress holds
    [{season_number, status, rating, notes, started_at, finished_at}] and is
    None when no season has progress.
    """

    __tablename__ = "list_items"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    list_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    media_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("media.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(Text, default=WatchStatus.to_watch.value, nullable=False)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)
    started_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    finished_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    season_progress: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("list_id", "media_id", name="uq_list_items_list_media"),
        CheckConstraint(
            "status IN ('to_watch', 'watching', 'watched', 'dropped')",
            name="ck_list_items_status",
        ),
        CheckConstraint(
            "priority IS NULL OR priority IN ('low', 'medium', 'high')",
            name="ck_list_items_priority",
        ),
        CheckConstraint(
            "rating IS NULL OR rating BETWEEN 1 AND 10",
            name="ck_list_items_rating",
        ),
    )

    watch_list: Mapped["WatchList"] = relationship("WatchList", back_populates="items")
    media: Mapped["MediaRecord"] = relationship("MediaRecord", lazy="joined")


class SearchCacheEntry(Base):
    """Cached raw catalog search results for one normalized query."""

    __tablename__ = "search_cache"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    query: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    results: Mapped[list] = mapped_column(JSON, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
