"""
Observation ingest schemas.

POST /api/activity    → ActivityIn   → IngestResponse
POST /api/transcript  → TranscriptIn → IngestResponse

Free text is stripped of control characters and truncated rather than
rejected: the capture loop must not lose an event over an overlong title.
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from pydantic import BaseModel, Field, field_validator

from monitorwatch.core.text import sanitize_text
from monitorwatch.models.observation import CaptureMode

MAX_APP_NAME = 256
MAX_BUNDLE_ID = 256
MAX_WINDOW_TITLE = 1024
MAX_OCR_TEXT = 50_000
MAX_TRANSCRIPT = 100_000
MAX_SOURCE = 256
MAX_DURATION_SECONDS = 86_400


class _LocalFields(BaseModel):
    timestamp: Annotated[str, Field(
        min_length=1,
        max_length=64,
        description="ISO-8601 instant. A trailing offset (e.g. -03:00) locates it locally.",
        examples=["2024-01-15T23:50:00-03:00"],
    )]
    local_date: Optional[date] = Field(
        default=None,
        description="Client wall-clock date. Trusted over the timestamp offset when given with local_hour.",
    )
    local_hour: Optional[int] = Field(default=None, ge=0, le=23)
    local_minute: Optional[int] = Field(default=None, ge=0, le=59)


class ActivityIn(_LocalFields):
    app_name: str = Field(default="", examples=["Visual Studio Code"])
    app_bundle_id: str = Field(default="", examples=["com.microsoft.VSCode"])
    window_title: str = Field(default="", examples=["main.py - monitorwatch"])
    ocr_text: Optional[str] = None
    capture_mode: CaptureMode = CaptureMode.metadata

    @field_validator("app_name", mode="before")
    @classmethod
    def _app_name(cls, v):
        return sanitize_text(v, MAX_APP_NAME)

    @field_validator("app_bundle_id", mode="before")
    @classmethod
    def _bundle(cls, v):
        return sanitize_text(v, MAX_BUNDLE_ID)

    @field_validator("window_title", mode="before")
    @classmethod
    def _title(cls, v):
        return sanitize_text(v, MAX_WINDOW_TITLE)

    @field_validator("ocr_text", mode="before")
    @classmethod
    def _ocr(cls, v):
        return sanitize_text(v, MAX_OCR_TEXT) or None


class TranscriptIn(_LocalFields):
    text: Annotated[str, Field(min_length=1)]
    source: str = "microphone"
    duration_seconds: int = Field(default=0, ge=0, le=MAX_DURATION_SECONDS)
    capture_mode: CaptureMode = CaptureMode.audio

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, v):
        return sanitize_text(v, MAX_TRANSCRIPT).strip()

    @field_validator("source", mode="before")
    @classmethod
    def _source(cls, v):
        return sanitize_text(v, MAX_SOURCE) or "microphone"


class IngestResponse(BaseModel):
    success: bool = True
    id: str
    local_date: str
    local_hour: int
    slot: int = Field(description="10-minute slot 0..5 within the hour.")
    resolution: str = Field(description="client | offset | utc_fallback")
