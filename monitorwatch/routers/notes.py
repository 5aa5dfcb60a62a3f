"""
Notes router.

POST /api/notes/generate  — daily note for a date (always a new note_number)
POST /api/notes/quick     — note over the last N minutes
POST /api/notes/meeting   — note over an explicit instant range
GET  /api/notes/{date}    — every note for a date, by note_number
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monitorwatch.core.deps import get_pipeline, get_user_id, verify_api_key
from monitorwatch.core.errors import InvalidDateError, NoteNotFoundError
from monitorwatch.db.base import get_db
from monitorwatch.schemas.common import ERROR_RESPONSES, ErrorResponse
from monitorwatch.schemas.notes import (
    GenerateNoteRequest,
    MeetingNoteRequest,
    NoteListResponse,
    NoteOut,
    NoteResultResponse,
    QuickNoteRequest,
)
from monitorwatch.services.note_pipeline import NotePipeline
from monitorwatch.services.repository import Repository
from monitorwatch.services.time_bucketer import parse_timestamp

router = APIRouter(prefix="/api/notes", tags=["notes"], dependencies=[Depends(verify_api_key)])

_AI_RESPONSES = {
    **ERROR_RESPONSES,
    502: {"model": ErrorResponse, "description": "Upstream AI call failed."},
    503: {"model": ErrorResponse, "description": "AI not configured."},
}


def parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidDateError(value) from exc


@router.post(
    "/generate",
    response_model=NoteResultResponse,
    summary="Generate a daily note",
    responses=_AI_RESPONSES,
)
async def generate_note(payload: GenerateNoteRequest, pipeline: NotePipeline = Depends(get_pipeline)):
    """
    Summarize every hour with data (reusing stored chunk summaries) and
    write a new note. `status` is `no_data` when the date has no observations.
    """
    result = await pipeline.generate_note(payload.date, reason=payload.reason or "Manual")
    return NoteResultResponse.from_result(result)


@router.post(
    "/quick",
    response_model=NoteResultResponse,
    summary="Generate a note over the last N minutes",
    responses=_AI_RESPONSES,
)
async def generate_quick_note(payload: QuickNoteRequest, pipeline: NotePipeline = Depends(get_pipeline)):
    result = await pipeline.generate_quick_note(
        payload.minutes_back,
        reason=payload.reason or f"Quick note ({payload.minutes_back} min)",
    )
    return NoteResultResponse.from_result(result)


@router.post(
    "/meeting",
    response_model=NoteResultResponse,
    summary="Generate a meeting note for an instant range",
    responses=_AI_RESPONSES,
)
async def generate_meeting_note(payload: MeetingNoteRequest, pipeline: NotePipeline = Depends(get_pipeline)):
    """Range must be ordered and at most 24 hours (`INVALID_TIME_RANGE`)."""
    start, _ = parse_timestamp(payload.start_time)
    end, _ = parse_timestamp(payload.end_time)
    result = await pipeline.generate_meeting_note(start, end, payload.context)
    return NoteResultResponse.from_result(result)


@router.get(
    "/{day}",
    response_model=NoteListResponse,
    summary="List notes for a date",
    responses={404: {"model": ErrorResponse, "description": "No notes for that date."}},
)
def list_notes(day: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    target = parse_day(day)
    notes = Repository(db, user_id).get_notes(target)
    if not notes:
        raise NoteNotFoundError(target.isoformat())
    return NoteListResponse(
        date=target.isoformat(),
        total=len(notes),
        notes=[NoteOut.from_note(n) for n in notes],
    )
