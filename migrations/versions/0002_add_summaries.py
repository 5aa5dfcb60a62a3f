"""add chunk and hourly summaries

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "chunk_summaries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("hour", sa.Integer(), nullable=False),
        sa.Column("slot", sa.Integer(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False, server_default=""),
        sa.Column("observation_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chunk_summaries_id", "chunk_summaries", ["id"])
    op.create_index("ix_chunk_summaries_date", "chunk_summaries", ["date"])
    op.create_unique_constraint(
        "uq_chunk_summary_key", "chunk_summaries", ["user_id", "date", "hour", "slot"]
    )

    op.create_table(
        "hourly_summaries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("hour", sa.Integer(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_hourly_summaries_id", "hourly_summaries", ["id"])
    op.create_index("ix_hourly_summaries_date", "hourly_summaries", ["date"])
    op.create_unique_constraint(
        "uq_hourly_summary_key", "hourly_summaries", ["user_id", "date", "hour"]
    )


def downgrade() -> None:
    op.drop_constraint("uq_hourly_summary_key", "hourly_summaries", type_="unique")
    op.drop_table("hourly_summaries")
    op.drop_constraint("uq_chunk_summary_key", "chunk_summaries", type_="unique")
    op.drop_table("chunk_summaries")
