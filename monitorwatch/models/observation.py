"""
Observations — raw, fine-grained captures of desktop activity.

Rules:
- Append-only: never updated once written (retention deletes whole rows).
- local_date / local_hour / local_minute are resolved once at ingestion by
  the time bucketer and never recomputed.
- occurred_at is stored in UTC.
"""
from datetime import datetime, date
import enum

from sqlalchemy import Integer, String, Text, DateTime, Date, Enum, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from monitorwatch.db.base import Base


class CaptureMode(str, enum.Enum):
    full = "full"              # screen text + audio + metadata
    screenshot = "screenshot"  # screen text + metadata
    audio = "audio"            # transcription + metadata
    metadata = "metadata"      # window title only
    ignore = "ignore"          # nothing


class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (
        Index("ix_activities_user_local", "user_id", "local_date", "local_hour"),
        Index("ix_activities_user_occurred", "user_id", "occurred_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    local_date: Mapped[date] = mapped_column(Date, nullable=False)
    local_hour: Mapped[int] = mapped_column(Integer, nullable=False)
    local_minute: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    app_bundle_id: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    app_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    window_title: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    ocr_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    capture_mode: Mapped[str] = mapped_column(
        Enum(CaptureMode, name="capture_mode_enum"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Transcript(Base):
    __tablename__ = "transcripts"
    __table_args__ = (
        Index("ix_transcripts_user_local", "user_id", "local_date", "local_hour"),
        Index("ix_transcripts_user_occurred", "user_id", "occurred_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    local_date: Mapped[date] = mapped_column(Date, nullable=False)
    local_hour: Mapped[int] = mapped_column(Integer, nullable=False)
    local_minute: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source: Mapped[str] = mapped_column(String(256), nullable=False, default="microphone")
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    capture_mode: Mapped[str] = mapped_column(
        Enum(CaptureMode, name="capture_mode_enum"), nullable=False, default=CaptureMode.audio
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
