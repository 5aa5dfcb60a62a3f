"""
Trigger router: inbound generation signals from the desktop client.

POST /api/triggers/manual    — user asked for a note now
POST /api/triggers/sleep     — system about to sleep (bounded wait)
POST /api/triggers/shutdown  — system about to shut down (bounded wait)

All three go through the scheduler's cooldown gate; a skipped trigger is a
200 with outcome "cooldown" / "in_flight", not an error.
"""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends

from monitorwatch.core.deps import get_pipeline, get_scheduler, verify_api_key
from monitorwatch.schemas.common import ERROR_RESPONSES
from monitorwatch.schemas.notes import NoteOut, TriggerResponse
from monitorwatch.services.note_pipeline import NotePipeline, NoteResult
from monitorwatch.services.scheduler import NoteScheduler, TriggerOutcome, TriggerResult

router = APIRouter(prefix="/api/triggers", tags=["triggers"], dependencies=[Depends(verify_api_key)])


def _daily_job(pipeline: NotePipeline):
    async def job(reason: str) -> NoteResult:
        return await pipeline.generate_note(datetime.now().astimezone().date(), reason=reason)
    return job


def _to_response(result: TriggerResult) -> TriggerResponse:
    if result.outcome == TriggerOutcome.FAILED and result.error is not None:
        raise result.error
    note = result.result.note if result.result is not None else None
    return TriggerResponse(
        outcome=result.outcome,
        reason=result.reason,
        cooldown_remaining_seconds=result.cooldown_remaining_seconds,
        note=NoteOut.from_note(note) if note is not None else None,
    )


@router.post("/manual", response_model=TriggerResponse, summary="Manual note trigger", responses=ERROR_RESPONSES)
async def manual_trigger(
    pipeline: NotePipeline = Depends(get_pipeline),
    scheduler: NoteScheduler = Depends(get_scheduler),
):
    return _to_response(await scheduler.trigger("Manual", job=_daily_job(pipeline)))


@router.post("/sleep", response_model=TriggerResponse, summary="System sleep signal")
async def sleep_trigger(
    pipeline: NotePipeline = Depends(get_pipeline),
    scheduler: NoteScheduler = Depends(get_scheduler),
):
    return _to_response(await scheduler.on_sleep(job=_daily_job(pipeline)))


@router.post("/shutdown", response_model=TriggerResponse, summary="System shutdown signal")
async def shutdown_trigger(
    pipeline: NotePipeline = Depends(get_pipeline),
    scheduler: NoteScheduler = Depends(get_scheduler),
):
    return _to_response(await scheduler.on_shutdown(job=_daily_job(pipeline)))
