"""initial chord schema

Revision ID: 20261019_000001
Revises: 
Create Date: 2026-10-19 00:00:01.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_000001"
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _timestamp(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), **kwargs)


def upgrade() -> None:
    """Create every chord table."""
    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("spotify_id", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("bio", sa.String(length=50), nullable=True),
        sa.Column("profile_photo_url", sa.String(length=1024), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        _timestamp("last_location_update", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("last_active_at", nullable=True),
        _timestamp("created_at", server_default=sa.func.now()),
        _timestamp("updated_at", server_default=sa.func.now()),
    )
    op.create_index("ix_users_spotify_id", "users", ["spotify_id"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_is_active", "users", ["is_active"])
    op.create_index("ix_users_lat_lng", "users", ["latitude", "longitude"])

    op.create_table(
        "user_taste_profiles",
        _uuid("id", primary_key=True),
        _uuid("user_id", sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("embedding", postgresql.JSONB(), nullable=True),
        sa.Column("top_artists", postgresql.JSONB(), nullable=True),
        sa.Column("top_genres", postgresql.JSONB(), nullable=True),
        sa.Column("top_tracks", postgresql.JSONB(), nullable=True),
        _timestamp("last_synced_at", server_default=sa.func.now()),
        _timestamp("created_at", server_default=sa.func.now()),
        _timestamp("updated_at", server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", name="uq_user_taste_profile"),
    )

    op.create_table(
        "matches",
        _uuid("id", primary_key=True),
        _uuid("user1_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("user2_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("pair_key", sa.String(length=80), nullable=False),
        sa.Column("created_date", sa.Date(), nullable=False),
        sa.Column("match_score", sa.Float(), nullable=False),
        sa.Column("music_similarity", sa.Float(), nullable=False),
        sa.Column("distance_km", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _uuid("reveal_requested_by", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _timestamp("reveal_requested_at", nullable=True),
        sa.Column("identities_revealed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        _timestamp("created_at", server_default=sa.func.now()),
        sa.UniqueConstraint("pair_key", "created_date", name="uq_match_pair_date"),
        sa.CheckConstraint("user1_id <> user2_id", name="ck_match_distinct_users"),
        sa.CheckConstraint("music_similarity >= 0 AND music_similarity <= 1", name="ck_match_similarity_range"),
        sa.CheckConstraint("distance_km >= 0", name="ck_match_distance_nonnegative"),
    )
    op.create_index("ix_matches_user1_id", "matches", ["user1_id"])
    op.create_index("ix_matches_user2_id", "matches", ["user2_id"])
    op.create_index("ix_matches_created_date", "matches", ["created_date"])

    op.create_table(
        "match_day_claims",
        _uuid("id", primary_key=True),
        _uuid("user_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("match_date", sa.Date(), nullable=False),
        _uuid("match_id", sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False),
        _timestamp("created_at", server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "match_date", name="uq_match_day_claim"),
    )
    op.create_index("ix_match_day_claims_match_date", "match_day_claims", ["match_date"])

    op.create_table(
        "blocks",
        _uuid("id", primary_key=True),
        _uuid("blocker_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("blocked_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("match_id", sa.ForeignKey("matches.id", ondelete="SET NULL"), nullable=True),
        _timestamp("created_at", server_default=sa.func.now()),
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_block_pair"),
    )
    op.create_index("ix_blocks_blocker_id", "blocks", ["blocker_id"])
    op.create_index("ix_blocks_blocked_id", "blocks", ["blocked_id"])

    op.create_table(
        "reports",
        _uuid("id", primary_key=True),
        _uuid("reporter_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("reported_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _uuid("match_id", sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=False, server_default="other"),
        _timestamp("created_at", server_default=sa.func.now()),
    )
    op.create_index("ix_reports_reporter_id", "reports", ["reporter_id"])
    op.create_index("ix_reports_reported_id", "reports", ["reported_id"])

    op.create_table(
        "messages",
        _uuid("id", primary_key=True),
        _uuid("match_id", sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False),
        _uuid("sender_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.String(length=2000), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at", server_default=sa.func.now()),
    )
    op.create_index("ix_messages_match_id", "messages", ["match_id"])
    op.create_index("ix_messages_created_at", "messages", ["created_at"])

    op.create_table(
        "provider_tokens",
        _uuid("id", primary_key=True),
        _uuid("user_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("ciphertext", sa.Text(), nullable=True),
        _timestamp("expires_at", nullable=True),
        _timestamp("refreshed_at", nullable=True),
        _timestamp("revoked_at", nullable=True),
        sa.Column("revoked_reason", sa.String(length=255), nullable=True),
        _timestamp("created_at", nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "provider", name="uq_provider_token_user"),
    )
    op.create_index("ix_provider_tokens_user_id", "provider_tokens", ["user_id"])


def downgrade() -> None:
    """Drop every chord table."""
    for table in (
        "provider_tokens",
        "messages",
        "reports",
        "blocks",
        "match_day_claims",
        "matches",
        "user_taste_profiles",
        "users",
    ):
        op.drop_table(table)
