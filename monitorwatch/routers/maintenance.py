"""
Maintenance router.

POST /api/maintenance/prune — delete rows older than RETENTION_HOURS (all users)
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from monitorwatch.core.config import Settings
from monitorwatch.core.deps import get_settings, verify_api_key
from monitorwatch.db.base import get_db
from monitorwatch.schemas.config import PruneResponse
from monitorwatch.services.retention import prune_expired

router = APIRouter(prefix="/api/maintenance", tags=["maintenance"], dependencies=[Depends(verify_api_key)])


@router.post("/prune", response_model=PruneResponse, summary="Apply the retention window")
def prune(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    result = prune_expired(db, settings.RETENTION_HOURS)
    return PruneResponse(
        cutoff=result.cutoff.isoformat(),
        activities=result.activities,
        transcripts=result.transcripts,
        chunk_summaries=result.chunk_summaries,
        hourly_summaries=result.hourly_summaries,
        notes=result.notes,
        total=result.total,
    )
