"""
Config router.

GET /api/config  — the caller's config merged over defaults
PUT /api/config  — partial update; schedule fields re-arm the running scheduler,
                  profile and trigger phrase go to the running monitor
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monitorwatch.core.config import Settings
from monitorwatch.core.deps import (
    get_monitor,
    get_scheduler,
    get_settings,
    get_user_id,
    verify_api_key,
)
from monitorwatch.db.base import get_db
from monitorwatch.schemas.common import ERROR_RESPONSES
from monitorwatch.schemas.config import UserConfigOut, UserConfigUpdate
from monitorwatch.services.monitor import Monitor
from monitorwatch.services.scheduler import NoteScheduler
from monitorwatch.services.user_config import get_config, update_config

router = APIRouter(prefix="/api/config", tags=["config"], dependencies=[Depends(verify_api_key)])


@router.get("", response_model=UserConfigOut, summary="Get user config")
def read_config(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    settings: Settings = Depends(get_settings),
):
    return UserConfigOut(**get_config(db, user_id, settings))


@router.put("", response_model=UserConfigOut, summary="Update user config", responses=ERROR_RESPONSES)
async def write_config(
    payload: UserConfigUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    settings: Settings = Depends(get_settings),
    scheduler: NoteScheduler = Depends(get_scheduler),
    monitor: Monitor = Depends(get_monitor),
):
    updates = payload.model_dump(exclude_none=True, mode="json")
    merged = update_config(db, user_id, updates, settings)

    if {"note_frequency", "scheduled_time", "generate_on_sleep"} & updates.keys():
        scheduler.update_schedule(
            frequency=updates.get("note_frequency"),
            scheduled_time=updates.get("scheduled_time"),
            generate_on_sleep=updates.get("generate_on_sleep"),
        )
    if {"performance_profile", "voice_trigger_phrase"} & updates.keys():
        monitor.apply_config(merged)
    return UserConfigOut(**merged)
