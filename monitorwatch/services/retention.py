"""
Retention: deletes everything older than the retention window, all users.

Observations are aged by occurred_at, notes and hour summaries by
updated_at, chunk summaries by created_at. Nothing in the core assumes
yesterday's rows still exist.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from monitorwatch.models.note import Note
from monitorwatch.models.observation import Activity, Transcript
from monitorwatch.models.summary import ChunkSummary, HourlySummary

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    cutoff: datetime
    activities: int = 0
    transcripts: int = 0
    chunk_summaries: int = 0
    hourly_summaries: int = 0
    notes: int = 0

    @property
    def total(self) -> int:
        return (
            self.activities + self.transcripts + self.chunk_summaries
            + self.hourly_summaries + self.notes
        )


def prune_expired(db: Session, retention_hours: int = 24, now: Optional[datetime] = None) -> PruneResult:
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(hours=retention_hours)
    result = PruneResult(cutoff=cutoff)

    result.activities = (
        db.query(Activity).filter(Activity.occurred_at < cutoff).delete(synchronize_session=False)
    )
    result.transcripts = (
        db.query(Transcript).filter(Transcript.occurred_at < cutoff).delete(synchronize_session=False)
    )
    result.chunk_summaries = (
        db.query(ChunkSummary).filter(ChunkSummary.created_at < cutoff).delete(synchronize_session=False)
    )
    result.hourly_summaries = (
        db.query(HourlySummary).filter(HourlySummary.updated_at < cutoff).delete(synchronize_session=False)
    )
    result.notes = db.query(Note).filter(Note.updated_at < cutoff).delete(synchronize_session=False)
    db.commit()

    logger.info("Retention: pruned %d rows older than %s", result.total, cutoff.isoformat())
    return result
