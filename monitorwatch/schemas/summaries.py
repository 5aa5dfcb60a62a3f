from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class HourSummaryRequest(BaseModel):
    date: dt.date
    hour: int = Field(ge=0, le=23)
    reason: Optional[str] = Field(default=None, max_length=256)


class HourSummaryOut(BaseModel):
    date: str
    hour: int
    summary: str


class HourSummaryListResponse(BaseModel):
    date: str
    hours: list[HourSummaryOut]
