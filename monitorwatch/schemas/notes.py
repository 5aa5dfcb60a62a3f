"""
Note and trigger schemas.

POST /api/notes/generate   → GenerateNoteRequest → NoteResultResponse
POST /api/notes/quick      → QuickNoteRequest    → NoteResultResponse
POST /api/notes/meeting    → MeetingNoteRequest  → NoteResultResponse
GET  /api/notes/{date}     →                       NoteListResponse
POST /api/triggers/{kind}  →                       TriggerResponse
"""
from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from monitorwatch.models.note import Note
from monitorwatch.services.note_pipeline import NoteResult


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


class GenerateNoteRequest(BaseModel):
    date: dt.date = Field(examples=["2024-01-15"])
    reason: Optional[str] = Field(default=None, max_length=256)


class QuickNoteRequest(BaseModel):
    minutes_back: int = Field(default=30, ge=1, le=1440, examples=[10, 30, 60, 120])
    reason: Optional[str] = Field(default=None, max_length=256)


class MeetingNoteRequest(BaseModel):
    start_time: str = Field(examples=["2024-01-15T14:00:00-03:00"])
    end_time: str = Field(examples=["2024-01-15T15:00:00-03:00"])
    context: str = Field(default="", max_length=2000)


class NoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: str
    note_number: int
    kind: str
    title: str
    content: str
    reason: Optional[str] = None
    vault_path: Optional[str] = None
    created_at: str

    @classmethod
    def from_note(cls, note: Note) -> "NoteOut":
        return cls(
            id=note.id,
            date=str(note.date),
            note_number=note.note_number,
            kind=_ev(note.kind),
            title=note.title,
            content=note.content,
            reason=note.reason,
            vault_path=note.vault_path,
            created_at=note.created_at.isoformat() if note.created_at else "",
        )


class NoteResultResponse(BaseModel):
    status: str = Field(description="generated | no_data")
    title: str = ""
    filename: Optional[str] = Field(default=None, description="Vault-relative path.")
    vault_path: Optional[str] = None
    note: Optional[NoteOut] = None

    @classmethod
    def from_result(cls, result: NoteResult) -> "NoteResultResponse":
        return cls(
            status=result.status,
            title=result.title,
            filename=result.filename,
            vault_path=result.vault_path,
            note=NoteOut.from_note(result.note) if result.note is not None else None,
        )


class NoteListResponse(BaseModel):
    date: str
    total: int
    notes: list[NoteOut]


class TriggerResponse(BaseModel):
    outcome: str = Field(description="generated | no_data | cooldown | in_flight | disabled | timed_out")
    reason: str
    cooldown_remaining_seconds: int = 0
    note: Optional[NoteOut] = None
