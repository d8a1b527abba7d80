"""Add ranks.

Revision ID: 002_add_ranks
Revises: 001_initial_schema
Create Date: 2026-10-19

Adds the ranks table (global ladder plus optional per-campaign ladders)
and the users.current_rank column.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "002_add_ranks"
down_revision: str | None = "001_initial_schema"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create ranks and track each user's rank."""
    op.add_column(
        "users",
        sa.Column("current_rank", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "ranks",
        sa.Column("id", sa.BigInteger(), nullable=False),
        sa.Column("campaign_id", sa.BigInteger(), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("title", sa.String(200), nullable=False, server_default=""),
        sa.Column("min_experience", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_missions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("required_competencies", JSONB(), nullable=False, server_default="{}"),
        sa.Column("currency_reward", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("campaign_id", "level", name="uq_ranks_campaign_level"),
    )
    op.create_index("ix_ranks_campaign_id", "ranks", ["campaign_id"])


def downgrade() -> None:
    """Drop ranks and the current_rank column."""
    op.drop_index("ix_ranks_campaign_id", "ranks")
    op.drop_table("ranks")
    op.drop_column("users", "current_rank")
