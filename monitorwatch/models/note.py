"""
Note — a generated artifact for one local date.

note_number increments per (user, date) and is never reused: generating
twice on the same day yields two rows, not an overwrite. "daily", "quick"
and "meeting" notes share the table and differ only by `kind`.
"""
from datetime import datetime, date
import enum

from sqlalchemy import Integer, String, Text, DateTime, Date, Enum, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from monitorwatch.db.base import Base


class NoteKind(str, enum.Enum):
    daily = "daily"
    quick = "quick"
    meeting = "meeting"


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = (
        UniqueConstraint("user_id", "date", "note_number", name="uq_note_user_date_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    note_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    kind: Mapped[str] = mapped_column(
        Enum(NoteKind, name="note_kind_enum"), nullable=False, default=NoteKind.daily
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(256), nullable=True)
    vault_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
