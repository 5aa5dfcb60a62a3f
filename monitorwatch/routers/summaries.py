"""
Summaries router.

POST /api/summaries/hour    — summarize one hour (chunks memoized)
GET  /api/summaries/{date}  — stored hour summaries for a date, by hour
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monitorwatch.core.deps import get_pipeline, get_user_id, verify_api_key
from monitorwatch.db.base import get_db
from monitorwatch.routers.notes import parse_day
from monitorwatch.schemas.common import ERROR_RESPONSES
from monitorwatch.schemas.summaries import (
    HourSummaryListResponse,
    HourSummaryOut,
    HourSummaryRequest,
)
from monitorwatch.services.note_pipeline import NotePipeline
from monitorwatch.services.repository import Repository

router = APIRouter(prefix="/api/summaries", tags=["summaries"], dependencies=[Depends(verify_api_key)])


@router.post("/hour", response_model=HourSummaryOut, summary="Summarize one hour", responses=ERROR_RESPONSES)
async def summarize_hour(payload: HourSummaryRequest, pipeline: NotePipeline = Depends(get_pipeline)):
    summary = await pipeline.hierarchy.summarize_hour(
        payload.date, payload.hour, reason=payload.reason or "Manual hour summary"
    )
    return HourSummaryOut(date=payload.date.isoformat(), hour=payload.hour, summary=summary)


@router.get("/{day}", response_model=HourSummaryListResponse, summary="List hour summaries for a date")
def list_hour_summaries(day: str, db: Session = Depends(get_db), user_id: str = Depends(get_user_id)):
    target = parse_day(day)
    rows = Repository(db, user_id).get_hour_summaries(target)
    return HourSummaryListResponse(
        date=target.isoformat(),
        hours=[HourSummaryOut(date=target.isoformat(), hour=r.hour, summary=r.summary) for r in rows],
    )
