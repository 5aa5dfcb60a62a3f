"""
Request dependencies: caller identity, API-key check, and the services the
lifespan hung on app.state.
"""
from __future__ import annotations

import hmac
import re
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from monitorwatch.core.config import Settings
from monitorwatch.core.errors import UnauthorizedError
from monitorwatch.db.base import get_db
from monitorwatch.services.monitor import Monitor
from monitorwatch.services.note_pipeline import NotePipeline, build_user_pipeline
from monitorwatch.services.scheduler import NoteScheduler
from monitorwatch.services.summarizer import Summarizer

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-ID"),
    settings: Settings = Depends(get_settings),
) -> str:
    """Header value when well-formed, otherwise the default user."""
    if x_user_id and _USER_ID_RE.match(x_user_id):
        return x_user_id
    return settings.DEFAULT_USER_ID


def verify_api_key(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.API_SECRET_KEY:
        return
    expected = f"Bearer {settings.API_SECRET_KEY}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        raise UnauthorizedError()


def get_summarizer(request: Request) -> Summarizer:
    return request.app.state.summarizer


def get_scheduler(request: Request) -> NoteScheduler:
    return request.app.state.scheduler


def get_pipeline(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
    summarizer: Summarizer = Depends(get_summarizer),
    settings: Settings = Depends(get_settings),
) -> NotePipeline:
    return build_user_pipeline(db, user_id, summarizer, settings)


def get_monitor(request: Request) -> Monitor:
    return request.app.state.monitor
