"""
Derived summaries — projections of the observation tables.

ChunkSummary   one row per (user, date, hour, slot 0..5); memoized, a
               non-empty row is never recomputed.
HourlySummary  one row per (user, date, hour); the slot-ordered join of its
               chunk summaries. Upserted: newest wins.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, DateTime, Date, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from monitorwatch.db.base import Base


class ChunkSummary(Base):
    __tablename__ = "chunk_summaries"
    __table_args__ = (
        UniqueConstraint("user_id", "date", "hour", "slot", name="uq_chunk_summary_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    hour: Mapped[int] = mapped_column(Integer, nullable=False)
    slot: Mapped[int] = mapped_column(Integer, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    observation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class HourlySummary(Base):
    __tablename__ = "hourly_summaries"
    __table_args__ = (
        UniqueConstraint("user_id", "date", "hour", name="uq_hourly_summary_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    hour: Mapped[int] = mapped_column(Integer, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
