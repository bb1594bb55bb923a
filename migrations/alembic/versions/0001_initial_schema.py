"""Initial schema - users, lists, list_members, media, list_items, search_cache

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Mirrors watchtogether.db.models. Enum-valued columns are text with CHECK
constraints; JSON columns are jsonb.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        sa.UUID(),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp_column(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    # Enable pgcrypto extension for gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # ==========================================================================
    # users table (identity directory)
    # ==========================================================================
    op.create_table(
        "users",
        _id_column(),
        sa.Column("external_subject", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("email_normalized", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        _timestamp_column("created_at"),
        _timestamp_column("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_subject", name="uq_users_external_subject"),
    )
    # text_pattern_ops so prefix LIKE searches can use the index
    op.create_index(
        "ix_users_email_normalized",
        "users",
        ["email_normalized"],
        postgresql_ops={"email_normalized": "text_pattern_ops"},
    )

    # ==========================================================================
    # lists table
    # ==========================================================================
    op.create_table(
        "lists",
        _id_column(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("owner_subject", sa.Text(), nullable=False),
        sa.Column("default_sort", sa.Text(), server_default="added", nullable=False),
        _timestamp_column("created_at"),
        _timestamp_column("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "default_sort IN ('added', 'release', 'rating', 'alpha')",
            name="ck_lists_default_sort",
        ),
    )
    op.create_index("ix_lists_owner_subject", "lists", ["owner_subject"])

    # ==========================================================================
    # list_members table (roster, owner excluded)
    # ==========================================================================
    op.create_table(
        "list_members",
        sa.Column("list_id", sa.UUID(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False),
        _timestamp_column("created_at"),
        sa.PrimaryKeyConstraint("list_id", "subject"),
        sa.ForeignKeyConstraint(["list_id"], ["lists.id"], ondelete="CASCADE"),
        sa.CheckConstraint("role IN ('admin', 'viewer')", name="ck_list_members_role"),
    )
    op.create_index("ix_list_members_subject", "list_members", ["subject"])

    # ==========================================================================
    # media table (one row per catalog id)
    # ==========================================================================
    op.create_table(
        "media",
        _id_column(),
        sa.Column("catalog_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("poster_url", sa.Text(), nullable=True),
        sa.Column("backdrop_url", sa.Text(), nullable=True),
        sa.Column("release_date", sa.Text(), nullable=True),
        sa.Column(
            "genres",
            postgresql.JSONB(),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column("overview", sa.Text(), nullable=True),
        sa.Column("tagline", sa.Text(), nullable=True),
        sa.Column("vote_average", sa.Float(), nullable=True),
        sa.Column("last_air_date", sa.Text(), nullable=True),
        sa.Column("total_seasons", sa.Integer(), nullable=True),
        sa.Column("total_episodes", sa.Integer(), nullable=True),
        sa.Column("seasons", postgresql.JSONB(), nullable=True),
        sa.Column("watch_providers", postgresql.JSONB(), nullable=True),
        sa.Column("raw_catalog_payload", postgresql.JSONB(), nullable=False),
        _timestamp_column("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("catalog_id", name="uq_media_catalog_id"),
        sa.CheckConstraint("kind IN ('movie', 'tv')", name="ck_media_kind"),
    )

    # ==========================================================================
    # list_items table
    # ==========================================================================
    op.create_table(
        "list_items",
        _id_column(),
        sa.Column("list_id", sa.UUID(), nullable=False),
        sa.Column("media_id", sa.UUID(), nullable=False),
        sa.Column("status", sa.Text(), server_default="to_watch", nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("priority", sa.Text(), nullable=True),
        sa.Column("tags", postgresql.JSONB(), nullable=True),
        sa.Column("started_at", sa.BigInteger(), nullable=True),
        sa.Column("finished_at", sa.BigInteger(), nullable=True),
        sa.Column("season_progress", postgresql.JSONB(), nullable=True),
        _timestamp_column("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["list_id"], ["lists.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["media_id"], ["media.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("list_id", "media_id", name="uq_list_items_list_media"),
        sa.CheckConstraint(
            "status IN ('to_watch', 'watching', 'watched', 'dropped')",
            name="ck_list_items_status",
        ),
        sa.CheckConstraint(
            "priority IS NULL OR priority IN ('low', 'medium', 'high')",
            name="ck_list_items_priority",
        ),
        sa.CheckConstraint(
            "rating IS NULL OR rating BETWEEN 1 AND 10",
            name="ck_list_items_rating",
        ),
    )
    op.create_index("ix_list_items_list_id", "list_items", ["list_id"])

    # ==========================================================================
    # search_cache table
    # ==========================================================================
    op.create_table(
        "search_cache",
        _id_column(),
        sa.Column("query", sa.Text(), nullable=False),
        sa.Column("results", postgresql.JSONB(), nullable=False),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("query", name="uq_search_cache_query"),
    )
    op.create_index("ix_search_cache_expires_at", "search_cache", ["expires_at"])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key dependencies)
    op.drop_index("ix_search_cache_expires_at", table_name="search_cache")
    op.drop_table("search_cache")
    op.drop_index("ix_list_items_list_id", table_name="list_items")
    op.drop_table("list_items")
    op.drop_table("media")
    op.drop_index("ix_list_members_subject", table_name="list_members")
    op.drop_table("list_members")
    op.drop_index("ix_lists_owner_subject", table_name="lists")
    op.drop_table("lists")
    op.drop_index("ix_users_email_normalized", table_name="users")
    op.drop_table("users")
