"""initial schema: observations, notes, user config

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CAPTURE_MODES = ("full", "screenshot", "audio", "metadata", "ignore")
NOTE_KINDS = ("daily", "quick", "meeting")


def upgrade() -> None:
    # --- ENUM types ---
    capture_mode_enum = sa.Enum(*CAPTURE_MODES, name="capture_mode_enum")
    capture_mode_enum.create(op.get_bind(), checkfirst=True)

    note_kind_enum = sa.Enum(*NOTE_KINDS, name="note_kind_enum")
    note_kind_enum.create(op.get_bind(), checkfirst=True)

    # --- activities ---
    op.create_table(
        "activities",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("local_date", sa.Date(), nullable=False),
        sa.Column("local_hour", sa.Integer(), nullable=False),
        sa.Column("local_minute", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("app_bundle_id", sa.String(256), nullable=False, server_default=""),
        sa.Column("app_name", sa.String(256), nullable=False, server_default=""),
        sa.Column("window_title", sa.String(1024), nullable=False, server_default=""),
        sa.Column("ocr_text", sa.Text(), nullable=True),
        sa.Column("capture_mode", sa.Enum(*CAPTURE_MODES, name="capture_mode_enum", create_type=False), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activities_user_local", "activities", ["user_id", "local_date", "local_hour"])
    op.create_index("ix_activities_user_occurred", "activities", ["user_id", "occurred_at"])

    # --- transcripts ---
    op.create_table(
        "transcripts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("local_date", sa.Date(), nullable=False),
        sa.Column("local_hour", sa.Integer(), nullable=False),
        sa.Column("local_minute", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("source", sa.String(256), nullable=False, server_default="microphone"),
        sa.Column("duration_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("capture_mode", sa.Enum(*CAPTURE_MODES, name="capture_mode_enum", create_type=False), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transcripts_user_local", "transcripts", ["user_id", "local_date", "local_hour"])
    op.create_index("ix_transcripts_user_occurred", "transcripts", ["user_id", "occurred_at"])

    # --- notes ---
    op.create_table(
        "notes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("note_number", sa.Integer(), nullable=False),
        sa.Column("kind", sa.Enum(*NOTE_KINDS, name="note_kind_enum", create_type=False), nullable=False),
        sa.Column("title", sa.String(256), nullable=False, server_default=""),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("reason", sa.String(256), nullable=True),
        sa.Column("vault_path", sa.String(1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notes_id", "notes", ["id"])
    op.create_index("ix_notes_date", "notes", ["date"])
    op.create_unique_constraint("uq_note_user_date_number", "notes", ["user_id", "date", "note_number"])

    # --- user_configs ---
    op.create_table(
        "user_configs",
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("user_configs")
    op.drop_table("notes")
    op.drop_table("transcripts")
    op.drop_table("activities")

    op.execute("DROP TYPE IF EXISTS note_kind_enum")
    op.execute("DROP TYPE IF EXISTS capture_mode_enum")
