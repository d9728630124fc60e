"""Initial schema for users, rewards, claim history and monitoring."""

from __future__ import annotations
from typing import Union, Sequence

from alembic import op
import sqlalchemy as sa
from rewards_core.models.types import GUID, JSONType

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Initial schema for users, rewards, claim history and monitoring."""
    reward_status_ref = sa.Enum(
        "pending",
        "processing",
        "processed",
        "failed",
        name="reward_status",
        native_enum=False,
    )

    op.create_table(
        "users",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("discord_id", sa.String(length=64), nullable=False),
        sa.Column("steam_id", sa.String(length=32), nullable=True),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
        sa.UniqueConstraint("discord_id", name=op.f("uq_users_discord_id")),
    )
    op.create_index(op.f("ix_users_steam_id"), "users", ["steam_id"], unique=False)

    op.create_table(
        "subscriptions",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("user_id", GUID(), nullable=False),
        sa.Column("plan_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_subscriptions")),
    )
    op.create_index(op.f("ix_subscriptions_user_status"), "subscriptions", ["user_id", "status"], unique=False)

    op.create_table(
        "pending_rewards",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("user_id", GUID(), nullable=False),
        sa.Column("steam_id", sa.String(length=32), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("status", reward_status_ref, nullable=False),
        sa.Column("claim_type", sa.String(length=32), nullable=False),
        sa.Column("server_id", sa.String(length=64), nullable=False),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("day BETWEEN 1 AND 7", name=op.f("ck_pending_rewards_day_range")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_pending_rewards")),
    )
    op.create_index(op.f("ix_pending_rewards_steam_status"), "pending_rewards", ["steam_id", "status"], unique=False)
    op.create_index(op.f("ix_pending_rewards_status_updated"), "pending_rewards", ["status", "updated_at"], unique=False)

    op.create_table(
        "claim_history",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("user_id", GUID(), nullable=False),
        sa.Column("steam_id", sa.String(length=32), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("vip_tier", sa.String(length=32), nullable=False),
        sa.Column("items", JSONType(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_claim_history")),
    )
    op.create_index(
        op.f("ix_claim_history_user_claimed_at"), "claim_history", ["user_id", "claimed_at"], unique=False
    )

    op.create_table(
        "system_events",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("data", JSONType(), nullable=False),
        sa.Column("environment", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_system_events")),
    )
    op.create_index(op.f("ix_system_events_event_type"), "system_events", ["event_type"], unique=False)
    op.create_index(op.f("ix_system_events_created_at"), "system_events", ["created_at"], unique=False)

    op.create_table(
        "system_status",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("details", JSONType(), nullable=False),
        sa.Column("last_check", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_system_status")),
    )


def downgrade() -> None:
    """Drop every table created by the initial schema."""
    op.drop_table("system_status")
    op.drop_index(op.f("ix_system_events_created_at"), table_name="system_events")
    op.drop_index(op.f("ix_system_events_event_type"), table_name="system_events")
    op.drop_table("system_events")
    op.drop_index(op.f("ix_claim_history_user_claimed_at"), table_name="claim_history")
    op.drop_table("claim_history")
    op.drop_index(op.f("ix_pending_rewards_status_updated"), table_name="pending_rewards")
    op.drop_index(op.f("ix_pending_rewards_steam_status"), table_name="pending_rewards")
    op.drop_table("pending_rewards")
    op.drop_index(op.f("ix_subscriptions_user_status"), table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index(op.f("ix_users_steam_id"), table_name="users")
    op.drop_table("users")
