"""
Observation ingest router.

POST /api/activity    — one foreground activity observation
POST /api/transcript  — one speech transcript observation
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from monitorwatch.core.deps import get_user_id, verify_api_key
from monitorwatch.db.base import get_db
from monitorwatch.schemas.common import ERROR_RESPONSES
from monitorwatch.schemas.observation import ActivityIn, IngestResponse, TranscriptIn
from monitorwatch.services.ingest import IngestResult, ingest_activity, ingest_transcript
from monitorwatch.services.repository import Repository

router = APIRouter(prefix="/api", tags=["ingest"], dependencies=[Depends(verify_api_key)])


def _to_response(result: IngestResult) -> IngestResponse:
    key = result.resolved.key
    return IngestResponse(
        id=result.row.id,
        local_date=key.local_date.isoformat(),
        local_hour=key.local_hour,
        slot=key.slot,
        resolution=result.resolved.source,
    )


@router.post(
    "/activity",
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record an activity observation",
    responses=ERROR_RESPONSES,
)
def record_activity(
    payload: ActivityIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    """
    Resolve the observation's local bucket (client fields, then timestamp
    offset, then UTC) and store it. Timestamps more than 5 minutes ahead or
    older than a year are rejected with `INVALID_TIMESTAMP`.
    """
    return _to_response(ingest_activity(Repository(db, user_id), payload))


@router.post(
    "/transcript",
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a transcript observation",
    responses=ERROR_RESPONSES,
)
def record_transcript(
    payload: TranscriptIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    return _to_response(ingest_transcript(Repository(db, user_id), payload))
