"""
User config and maintenance schemas.

GET /api/config              → UserConfigOut
PUT /api/config              → UserConfigUpdate → UserConfigOut
POST /api/maintenance/prune  → PruneResponse
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from monitorwatch.services.capture_classifier import Profile, parse_profile
from monitorwatch.services.scheduler import NoteFrequency, parse_time_of_day


class UserConfigOut(BaseModel):
    performance_profile: str
    voice_trigger_phrase: str
    note_language: str
    note_frequency: str
    scheduled_time: str
    generate_on_sleep: bool
    vault_path: str


class UserConfigUpdate(BaseModel):
    """Partial update: omitted fields keep their stored value."""

    performance_profile: Optional[str] = Field(default=None, examples=["economy", "balanced", "quality"])
    voice_trigger_phrase: Optional[str] = Field(default=None, min_length=1, max_length=100)
    note_language: Optional[Literal["en", "pt"]] = None
    note_frequency: Optional[NoteFrequency] = None
    scheduled_time: Optional[str] = Field(default=None, examples=["22:00"])
    generate_on_sleep: Optional[bool] = None
    vault_path: Optional[str] = Field(default=None, max_length=1024)

    @field_validator("performance_profile")
    @classmethod
    def _profile(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v.strip().lower() not in {p.value for p in Profile} | {"low", "mid", "high"}:
            raise ValueError("performance_profile must be economy, balanced or quality")
        return parse_profile(v).value

    @field_validator("scheduled_time")
    @classmethod
    def _time(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            parse_time_of_day(v)
        return v

    @field_validator("voice_trigger_phrase")
    @classmethod
    def _phrase(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        stripped = v.strip()
        if not stripped:
            raise ValueError("voice_trigger_phrase must not be blank")
        return stripped


class PruneResponse(BaseModel):
    cutoff: str
    activities: int
    transcripts: int
    chunk_summaries: int
    hourly_summaries: int
    notes: int
    total: int
