import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from monitorwatch.db.base import SessionLocal, get_db
from monitorwatch.core.config import settings
from monitorwatch.core.logging_utils import configure_logging
from monitorwatch.routers import activity as activity_router
from monitorwatch.routers import notes as notes_router
from monitorwatch.routers import summaries as summaries_router
from monitorwatch.routers import config as config_router
from monitorwatch.routers import triggers as triggers_router
from monitorwatch.routers import maintenance as maintenance_router
from monitorwatch.core.errors import (
    MonitorWatchError,
    monitorwatch_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)
from monitorwatch.services.monitor import build_monitor
from monitorwatch.services.note_pipeline import NoteResult, build_user_pipeline
from monitorwatch.services.scheduler import NoteFrequency, NoteScheduler, ScheduleState
from monitorwatch.services.summarizer import OpenRouterSummarizer, Summarizer
from monitorwatch.services.user_config import default_config, get_config

logger = logging.getLogger(__name__)


def _build_scheduler(
    summarizer: Summarizer,
    session_factory: Callable[[], Session] = SessionLocal,
    user_id: Optional[str] = None,
) -> NoteScheduler:
    """Scheduler for the default user; its timers open their own DB session."""
    user_id = user_id or settings.DEFAULT_USER_ID

    async def daily_job(reason: str) -> NoteResult:
        db = session_factory()
        try:
            pipeline = build_user_pipeline(db, user_id, summarizer, settings)
            return await pipeline.generate_note(datetime.now().astimezone().date(), reason=reason)
        finally:
            db.close()

    return NoteScheduler(
        daily_job,
        state=ScheduleState(
            frequency=NoteFrequency(settings.NOTE_FREQUENCY),
            scheduled_time=settings.SCHEDULED_TIME,
            generate_on_sleep=settings.GENERATE_ON_SLEEP,
        ),
        cooldown_seconds=settings.GENERATION_COOLDOWN_SECONDS,
        shutdown_wait_seconds=settings.SHUTDOWN_WAIT_SECONDS,
    )


def _startup_config(session_factory: Callable[[], Session] = SessionLocal) -> dict:
    """The default user's stored config, or the defaults while the DB is not migrated yet."""
    db = session_factory()
    try:
        return get_config(db, settings.DEFAULT_USER_ID, settings)
    except SQLAlchemyError as e:
        logger.warning("Stored config unavailable, using defaults: %s", e)
        return default_config(settings)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    summarizer = OpenRouterSummarizer.from_settings(settings)
    scheduler = _build_scheduler(summarizer)
    # OS adapters (foreground, screen, speech) attach by posting to app.state.monitor.
    monitor = build_monitor(settings, scheduler, summarizer, SessionLocal, config=_startup_config())

    app.state.settings = settings
    app.state.summarizer = summarizer
    app.state.scheduler = scheduler
    app.state.monitor = monitor

    if not settings.ai_configured:
        logger.warning("OPENROUTER_API_KEY not set; note generation will fail until configured")
    scheduler.start()
    monitor.start()
    try:
        yield
    finally:
        await monitor.stop()
        await scheduler.stop()
        await summarizer.close()


app = FastAPI(
    title="MonitorWatch API",
    description=(
        "**Desktop activity → hierarchical notes**\n\n"
        "Ingests activity and transcript observations, folds them into 10-minute chunk, "
        "hourly and daily summaries, and generates notes on schedule, on sleep, or on demand.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(MonitorWatchError, monitorwatch_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(activity_router.router)
app.include_router(notes_router.router)
app.include_router(summaries_router.router)
app.include_router(config_router.router)
app.include_router(triggers_router.router)
app.include_router(maintenance_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
