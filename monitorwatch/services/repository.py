"""
Repository: the narrow storage interface the core talks to.

Rules:
- Every query is scoped to one user id.
- Observation writes are append-only.
- Chunk summaries are memoized (a non-empty row is returned as-is);
  hour summaries are upserted, newest wins.
- Notes are never overwritten: each insert takes the next note_number for
  (user, date). A unique-key collision with a concurrent writer retries once
  with a fresh number.
- db.commit() happens inside each write method; reads never commit.

Public API
----------
record_activity(resolved, ...)                   -> Activity
record_transcript(resolved, ...)                 -> Transcript
get_observations(day)                            -> list[Activity | Transcript]
observations_in_range(start, end)                -> list[Activity | Transcript]
observations_for_slot(day, hour, slot)           -> list[Activity | Transcript]
hours_with_data(day)                             -> list[int]
get_chunk_summary / upsert_chunk_summary         -> ChunkSummary
get_hour_summaries(day) / upsert_hour_summary    -> HourlySummary
next_note_number(day)                            -> int
insert_note(day, kind, title, content, reason)   -> Note
get_notes(day)                                   -> list[Note]
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from monitorwatch.models.note import Note, NoteKind
from monitorwatch.models.observation import Activity, CaptureMode, Transcript
from monitorwatch.models.summary import ChunkSummary, HourlySummary
from monitorwatch.services.time_bucketer import (
    SLOT_MINUTES,
    ResolvedTimestamp,
    as_utc,
    plausible_local_dates,
    within,
)

logger = logging.getLogger(__name__)

Observation = Union[Activity, Transcript]


def _sorted(rows: list[Observation]) -> list[Observation]:
    return sorted(rows, key=lambda r: as_utc(r.occurred_at))


class Repository:

    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    # -----------------------------------------------------------------------
    # Observations
    # -----------------------------------------------------------------------

    def record_activity(
        self,
        resolved: ResolvedTimestamp,
        app_bundle_id: str,
        app_name: str,
        window_title: str,
        capture_mode: CaptureMode,
        ocr_text: Optional[str] = None,
    ) -> Activity:
        row = Activity(
            id=str(uuid.uuid4()),
            user_id=self.user_id,
            occurred_at=resolved.instant,
            local_date=resolved.key.local_date,
            local_hour=resolved.key.local_hour,
            local_minute=resolved.key.local_minute,
            app_bundle_id=app_bundle_id,
            app_name=app_name,
            window_title=window_title,
            ocr_text=ocr_text,
            capture_mode=capture_mode,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def record_transcript(
        self,
        resolved: ResolvedTimestamp,
        text: str,
        source: str = "microphone",
        duration_seconds: int = 0,
        capture_mode: CaptureMode = CaptureMode.audio,
    ) -> Transcript:
        row = Transcript(
            id=str(uuid.uuid4()),
            user_id=self.user_id,
            occurred_at=resolved.instant,
            local_date=resolved.key.local_date,
            local_hour=resolved.key.local_hour,
            local_minute=resolved.key.local_minute,
            text=text,
            source=source,
            duration_seconds=duration_seconds,
            capture_mode=capture_mode,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def _by_local(self, model, dates: list[date], hour: Optional[int] = None):
        q = self.db.query(model).filter(
            model.user_id == self.user_id,
            model.local_date.in_(dates),
        )
        if hour is not None:
            q = q.filter(model.local_hour == hour)
        return q

    def get_observations(self, day: date) -> list[Observation]:
        """All observations bucketed on `day`, oldest first."""
        rows: list[Observation] = []
        rows.extend(self._by_local(Activity, [day]).all())
        rows.extend(self._by_local(Transcript, [day]).all())
        return _sorted(rows)

    def observations_in_range(self, start: datetime, end: datetime) -> list[Observation]:
        """
        Observations whose instant falls in [start, end].
        Fetches every plausible local date, then filters by instant here.
        """
        dates = plausible_local_dates(start, end)
        rows: list[Observation] = []
        rows.extend(self._by_local(Activity, dates).all())
        rows.extend(self._by_local(Transcript, dates).all())
        return _sorted([r for r in rows if within(r.occurred_at, start, end)])

    def observations_for_slot(self, day: date, hour: int, slot: int) -> list[Observation]:
        low, high = slot * SLOT_MINUTES, slot * SLOT_MINUTES + SLOT_MINUTES - 1
        rows: list[Observation] = []
        for model in (Activity, Transcript):
            rows.extend(
                self._by_local(model, [day], hour)
                .filter(model.local_minute >= low, model.local_minute <= high)
                .all()
            )
        return _sorted(rows)

    def hours_with_data(self, day: date) -> list[int]:
        hours: set[int] = set()
        for model in (Activity, Transcript):
            hours.update(
                h for (h,) in self.db.query(model.local_hour)
                .filter(model.user_id == self.user_id, model.local_date == day)
                .distinct()
                .all()
            )
        return sorted(hours)

    def count_observations(self, day: date) -> int:
        return sum(
            self._by_local(model, [day]).count() for model in (Activity, Transcript)
        )

    # -----------------------------------------------------------------------
    # Chunk summaries
    # -----------------------------------------------------------------------

    def get_chunk_summary(self, day: date, hour: int, slot: int) -> Optional[ChunkSummary]:
        return (
            self.db.query(ChunkSummary)
            .filter(
                ChunkSummary.user_id == self.user_id,
                ChunkSummary.date == day,
                ChunkSummary.hour == hour,
                ChunkSummary.slot == slot,
            )
            .first()
        )

    def upsert_chunk_summary(
        self, day: date, hour: int, slot: int, summary: str, observation_count: int
    ) -> ChunkSummary:
        existing = self.get_chunk_summary(day, hour, slot)
        if existing is None:
            row = ChunkSummary(
                user_id=self.user_id, date=day, hour=hour, slot=slot,
                summary=summary, observation_count=observation_count,
            )
            self.db.add(row)
            try:
                self.db.commit()
                return row
            except IntegrityError:
                # Another writer got there first; fall through to update.
                self.db.rollback()
                existing = self.get_chunk_summary(day, hour, slot)
                if existing is None:
                    raise
        existing.summary = summary
        existing.observation_count = observation_count
        self.db.commit()
        return existing

    # -----------------------------------------------------------------------
    # Hour summaries
    # -----------------------------------------------------------------------

    def get_hour_summary(self, day: date, hour: int) -> Optional[HourlySummary]:
        return (
            self.db.query(HourlySummary)
            .filter(
                HourlySummary.user_id == self.user_id,
                HourlySummary.date == day,
                HourlySummary.hour == hour,
            )
            .first()
        )

    def get_hour_summaries(self, day: date) -> list[HourlySummary]:
        return (
            self.db.query(HourlySummary)
            .filter(HourlySummary.user_id == self.user_id, HourlySummary.date == day)
            .order_by(HourlySummary.hour.asc())
            .all()
        )

    def upsert_hour_summary(self, day: date, hour: int, summary: str) -> HourlySummary:
        existing = self.get_hour_summary(day, hour)
        if existing is None:
            row = HourlySummary(user_id=self.user_id, date=day, hour=hour, summary=summary)
            self.db.add(row)
            try:
                self.db.commit()
                return row
            except IntegrityError:
                self.db.rollback()
                existing = self.get_hour_summary(day, hour)
                if existing is None:
                    raise
        existing.summary = summary
        self.db.commit()
        return existing

    # -----------------------------------------------------------------------
    # Notes
    # -----------------------------------------------------------------------

    def next_note_number(self, day: date) -> int:
        current = (
            self.db.query(func.max(Note.note_number))
            .filter(Note.user_id == self.user_id, Note.date == day)
            .scalar()
        )
        return (current or 0) + 1

    def insert_note(
        self,
        day: date,
        kind: NoteKind,
        title: str,
        content: str,
        reason: Optional[str] = None,
    ) -> Note:
        try:
            return self._insert_note(day, kind, title, content, reason)
        except IntegrityError:
            self.db.rollback()
            logger.info("Note number collision on %s, retrying", day)
            return self._insert_note(day, kind, title, content, reason)

    def _insert_note(
        self, day: date, kind: NoteKind, title: str, content: str, reason: Optional[str]
    ) -> Note:
        note = Note(
            user_id=self.user_id,
            date=day,
            note_number=self.next_note_number(day),
            kind=kind,
            title=title[:256],
            content=content,
            reason=reason[:256] if reason else None,
        )
        self.db.add(note)
        self.db.commit()
        return note

    def set_vault_path(self, note: Note, path: str) -> Note:
        note.vault_path = path
        self.db.commit()
        return note

    def get_notes(self, day: date) -> list[Note]:
        return (
            self.db.query(Note)
            .filter(Note.user_id == self.user_id, Note.date == day)
            .order_by(Note.note_number.asc())
            .all()
        )
