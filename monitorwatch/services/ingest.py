"""
Ingest service: validates instants, resolves bucket keys, persists observations.

Public API
----------
ingest_activity(repo, payload, now)    → IngestResult
ingest_transcript(repo, payload, now)  → IngestResult

Rules:
- Timestamps more than 5 minutes in the future or older than one year are
  rejected with InvalidTimestampError.
- The bucket key is resolved once here and stored; it is never recomputed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from monitorwatch.core.errors import InvalidTimestampError
from monitorwatch.models.observation import Activity, Transcript
from monitorwatch.schemas.observation import ActivityIn, TranscriptIn
from monitorwatch.services.repository import Repository
from monitorwatch.services.time_bucketer import ResolvedTimestamp, resolve_bucket

MAX_FUTURE_SKEW = timedelta(minutes=5)
MAX_AGE = timedelta(days=365)


@dataclass
class IngestResult:
    row: Union[Activity, Transcript]
    resolved: ResolvedTimestamp


def _resolve(payload, now: Optional[datetime]) -> ResolvedTimestamp:
    resolved = resolve_bucket(
        payload.timestamp,
        local_date=payload.local_date,
        local_hour=payload.local_hour,
        local_minute=payload.local_minute,
    )
    now = now or datetime.now(timezone.utc)
    if resolved.instant > now + MAX_FUTURE_SKEW:
        raise InvalidTimestampError(payload.timestamp, "more than 5 minutes in the future")
    if resolved.instant < now - MAX_AGE:
        raise InvalidTimestampError(payload.timestamp, "older than one year")
    return resolved


def ingest_activity(
    repo: Repository, payload: ActivityIn, now: Optional[datetime] = None
) -> IngestResult:
    resolved = _resolve(payload, now)
    row = repo.record_activity(
        resolved,
        app_bundle_id=payload.app_bundle_id,
        app_name=payload.app_name,
        window_title=payload.window_title,
        capture_mode=payload.capture_mode,
        ocr_text=payload.ocr_text,
    )
    return IngestResult(row=row, resolved=resolved)


def ingest_transcript(
    repo: Repository, payload: TranscriptIn, now: Optional[datetime] = None
) -> IngestResult:
    resolved = _resolve(payload, now)
    row = repo.record_transcript(
        resolved,
        text=payload.text,
        source=payload.source,
        duration_seconds=payload.duration_seconds,
        capture_mode=payload.capture_mode,
    )
    return IngestResult(row=row, resolved=resolved)
