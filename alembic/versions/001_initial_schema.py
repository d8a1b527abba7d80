"""Initial schema.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Creates users, campaigns, missions and their dependency edges, competencies,
per-user mission state and notification tables.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="cadet"),
        sa.Column("experience", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "campaigns",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("theme", JSONB(), nullable=False, server_default="{}"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )

    op.create_table(
        "missions",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("campaign_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("experience_reward", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("currency_reward", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("confirmation_type", sa.String(20), nullable=False, server_default="AUTO"),
        sa.Column("check_in_window_seconds", sa.Integer(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_missions_campaign_id", "missions", ["campaign_id"])

    op.create_table(
        "mission_dependencies",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("source_mission_id", sa.BigInteger(), nullable=False),
        sa.Column("target_mission_id", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["source_mission_id"], ["missions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_mission_id"], ["missions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "source_mission_id", "target_mission_id", name="uq_mission_dependencies_pair"
        ),
        sa.CheckConstraint(
            "source_mission_id <> target_mission_id", name="ck_mission_dependencies_no_self"
        ),
    )
    op.create_index(
        "ix_mission_dependencies_target_mission_id",
        "mission_dependencies",
        ["target_mission_id"],
    )

    op.create_table(
        "competencies",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "mission_competencies",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("mission_id", sa.BigInteger(), nullable=False),
        sa.Column("competency_id", sa.BigInteger(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["mission_id"], ["missions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["competency_id"], ["competencies.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_mission_competencies_mission_id", "mission_competencies", ["mission_id"]
    )

    op.create_table(
        "user_competencies",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("competency_id", sa.BigInteger(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["competency_id"], ["competencies.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "user_id", "competency_id", name="uq_user_competencies_user_competency"
        ),
    )

    op.create_table(
        "user_missions",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("mission_id", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("submission", JSONB(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rewarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["mission_id"], ["missions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "mission_id", name="uq_user_missions_user_mission"),
    )
    op.create_index("ix_user_missions_user_status", "user_missions", ["user_id", "status"])

    op.create_table(
        "user_notifications",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("kind", sa.String(40), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("metadata", JSONB(), nullable=False, server_default="{}"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_user_notifications_user_unread", "user_notifications", ["user_id", "is_read"]
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("ix_user_notifications_user_unread", "user_notifications")
    op.drop_table("user_notifications")
    op.drop_index("ix_user_missions_user_status", "user_missions")
    op.drop_table("user_missions")
    op.drop_table("user_competencies")
    op.drop_index("ix_mission_competencies_mission_id", "mission_competencies")
    op.drop_table("mission_competencies")
    op.drop_table("competencies")
    op.drop_index("ix_mission_dependencies_target_mission_id", "mission_dependencies")
    op.drop_table("mission_dependencies")
    op.drop_index("ix_missions_campaign_id", "missions")
    op.drop_table("missions")
    op.drop_table("campaigns")
    op.drop_table("users")
