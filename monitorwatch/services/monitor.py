"""
Monitor runtime: the inbound event channel and the effect interpreter.

OS adapters post ForegroundChanged / speech events (thread-safe); a title
poller posts WindowTitlePolled every `poll_seconds` (a failed poll is logged
and the next one runs as usual). One consumer task feeds each event to its
state machine and carries out the returned effects:

  EmitActivity / FlushTranscript  → repository insert (errors logged, never raised)
  CaptureScreen                   → OCR task; a failed or empty capture is
                                    recorded as a metadata-only activity
  StartAudio / StopAudio /
  SetRecording                    → fed into the audio machine
  ResetSilenceTimer /
  ScheduleRestart                 → loop timers that post events back
  MeetingNoteRequested            → meeting note over the session range
  RequestVoiceNote                → gated trigger on the scheduler; the
                                    activity machine restarts its meeting
                                    session so the span is not noted twice

`build_monitor` wires one from Settings and the user config store; each
effect worker opens and closes its own DB session.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime
from typing import Callable, Optional

from monitorwatch.core.errors import MonitorWatchError
from monitorwatch.models.observation import CaptureMode
from monitorwatch.services import activity_state as act
from monitorwatch.services import audio_state as aud
from monitorwatch.services.capabilities import (
    ForegroundProvider,
    Notifier,
    NullNotifier,
    ScreenTextProvider,
    SpeechRecognizer,
)
from monitorwatch.services.capture_classifier import ClassifierRules
from monitorwatch.services.note_pipeline import NotePipeline, NoteResult, build_user_pipeline
from monitorwatch.services.repository import Repository
from monitorwatch.services.scheduler import NoteScheduler
from monitorwatch.services.summarizer import Summarizer
from monitorwatch.services.time_bucketer import resolve_bucket
from monitorwatch.services.user_config import default_config

logger = logging.getLogger(__name__)

TITLE_POLL_SECONDS = 5.0

ACTIVITY_EVENTS = (act.ForegroundChanged, act.WindowTitlePolled, act.VoiceNoteTriggered)

RepositoryScope = Callable[[], AbstractContextManager[Repository]]
PipelineScope = Callable[[], AbstractContextManager[NotePipeline]]


def _now() -> datetime:
    return datetime.now().astimezone()


class Monitor:

    def __init__(
        self,
        repository_scope: RepositoryScope,
        pipeline_scope: PipelineScope,
        scheduler: NoteScheduler,
        activity: Optional[act.ActivityStateMachine] = None,
        audio: Optional[aud.AudioCaptureStateMachine] = None,
        foreground: Optional[ForegroundProvider] = None,
        screen: Optional[ScreenTextProvider] = None,
        speech: Optional[SpeechRecognizer] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = _now,
        poll_seconds: float = TITLE_POLL_SECONDS,
    ):
        self.repository_scope = repository_scope
        self.pipeline_scope = pipeline_scope
        self.scheduler = scheduler
        self.activity = activity or act.ActivityStateMachine()
        self.audio = audio or aud.AudioCaptureStateMachine()
        self.foreground = foreground
        self.screen = screen
        self.speech = speech
        self.notifier = notifier or NullNotifier()
        self.clock = clock
        self.poll_seconds = poll_seconds

        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._consumer: Optional[asyncio.Task] = None
        self._poller: Optional[asyncio.Task] = None
        self._silence_timer: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()

    # -----------------------------------------------------------------------
    # Lifecycle / inbound channel
    # -----------------------------------------------------------------------

    def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._consumer = asyncio.create_task(self._consume())
        if self.foreground is not None:
            self._poller = asyncio.create_task(self._poll_titles())
        logger.info("Monitor started")

    async def stop(self) -> None:
        self._cancel_silence_timer()
        for task in (self._poller, self._consumer):
            if task is not None:
                task.cancel()
        await asyncio.gather(
            *(t for t in (self._poller, self._consumer) if t is not None),
            return_exceptions=True,
        )
        self._poller = self._consumer = None
        await self.drain()
        logger.info("Monitor stopped")

    def apply_config(self, config: dict) -> None:
        """Take profile and trigger-phrase changes from the user config store."""
        if config.get("performance_profile"):
            self.activity.set_profile(config["performance_profile"])
        if config.get("voice_trigger_phrase"):
            self.audio.trigger_phrase = config["voice_trigger_phrase"]
        logger.info(
            "Monitor config: profile=%s trigger=%r",
            self.activity.profile.value, self.audio.trigger_phrase,
        )

    def post(self, event) -> None:
        self._queue.put_nowait(event)

    def post_threadsafe(self, event) -> None:
        """For OS callbacks that arrive on another thread."""
        if self._loop is None:
            raise RuntimeError("monitor not started")
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def drain(self) -> None:
        """Wait for background OCR / note tasks spawned so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.handle(event)
            except Exception:
                logger.exception("Failed to handle %s", type(event).__name__)
            finally:
                self._queue.task_done()

    async def _poll_titles(self) -> None:
        while True:
            await asyncio.sleep(self.poll_seconds)
            try:
                app_id, app_name, title = self.foreground.current_foreground()
                idle = self.foreground.idle_seconds()
            except Exception:
                logger.exception("Foreground poll failed")
                continue
            self.post(act.WindowTitlePolled(
                app_id=app_id,
                app_name=app_name,
                window_title=title,
                at=self.clock(),
                idle_seconds=idle,
            ))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # -----------------------------------------------------------------------
    # Dispatch
    # -----------------------------------------------------------------------

    async def handle(self, event) -> None:
        if isinstance(event, ACTIVITY_EVENTS):
            _, effects = self.activity.tick(event)
            for effect in effects:
                self._apply_activity_effect(effect)
        else:
            self._tick_audio(event)

    def _tick_audio(self, event) -> None:
        _, effects = self.audio.tick(event)
        for effect in effects:
            self._apply_audio_effect(effect)

    def _apply_activity_effect(self, effect) -> None:
        if isinstance(effect, act.EmitActivity):
            self._record_activity(effect, effect.capture_mode, None)
        elif isinstance(effect, act.CaptureScreen):
            self._spawn(self._capture_screen(effect))
        elif isinstance(effect, act.StartAudio):
            self._tick_audio(aud.Start())
        elif isinstance(effect, act.StopAudio):
            self._tick_audio(aud.Stop(effect.reason))
        elif isinstance(effect, act.SetRecording):
            self._tick_audio(aud.SetRecordingEnabled(effect.enabled))
        elif isinstance(effect, act.MeetingNoteRequested):
            self._spawn(self._meeting_note(effect.started_at, effect.ended_at, effect.context,
                                           f"Meeting ended ({effect.context})"))

    def _apply_audio_effect(self, effect) -> None:
        if isinstance(effect, aud.StartRecognition):
            if self.speech is not None:
                self.speech.start()
        elif isinstance(effect, aud.StopRecognition):
            if self.speech is not None:
                self.speech.stop()
        elif isinstance(effect, aud.ResetSilenceTimer):
            self._cancel_silence_timer()
            self._silence_timer = self._call_later(
                effect.seconds, lambda: self.post(aud.SilenceTimeout(self.clock()))
            )
        elif isinstance(effect, aud.CancelSilenceTimer):
            self._cancel_silence_timer()
        elif isinstance(effect, aud.FlushTranscript):
            self._record_transcript(effect)
        elif isinstance(effect, aud.Beep):
            self.notifier.beep()
        elif isinstance(effect, aud.Notify):
            self.notifier.notify(effect.title, effect.message)
        elif isinstance(effect, aud.RequestVoiceNote):
            self.activity.tick(act.VoiceNoteTriggered(at=effect.end))
            self._spawn(self._voice_note(effect))
        elif isinstance(effect, aud.ScheduleRestart):
            self._call_later(effect.delay_seconds,
                             lambda: self.post(aud.RestartElapsed(effect.attempt)))
        elif isinstance(effect, aud.TerminalFailure):
            self.notifier.notify("MonitorWatch", effect.message)

    def _call_later(self, delay: float, callback) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)

    def _cancel_silence_timer(self) -> None:
        if self._silence_timer is not None:
            self._silence_timer.cancel()
            self._silence_timer = None

    # -----------------------------------------------------------------------
    # Effect workers
    # -----------------------------------------------------------------------

    def _record_activity(self, effect, mode: CaptureMode, ocr_text: Optional[str]) -> None:
        try:
            with self.repository_scope() as repo:
                repo.record_activity(
                    resolve_bucket(effect.at),
                    app_bundle_id=effect.app_id,
                    app_name=effect.app_name,
                    window_title=effect.window_title,
                    capture_mode=mode,
                    ocr_text=ocr_text,
                )
        except Exception:
            logger.exception("Failed to record activity for %s", effect.app_id)

    def _record_transcript(self, effect: aud.FlushTranscript) -> None:
        try:
            with self.repository_scope() as repo:
                repo.record_transcript(
                    resolve_bucket(effect.started_at),
                    text=effect.text,
                    duration_seconds=effect.duration_seconds,
                )
        except Exception:
            logger.exception("Failed to record transcript")

    async def _capture_screen(self, effect: act.CaptureScreen) -> None:
        text: Optional[str] = None
        if self.screen is not None:
            try:
                text = await self.screen.capture_screen_text()
            except Exception as e:
                logger.warning("Screen capture failed for %s: %s", effect.app_id, e)
        if text:
            self._record_activity(effect, effect.capture_mode, text)
        else:
            self._record_activity(effect, CaptureMode.metadata, None)

    async def _meeting_note(
        self, start: datetime, end: datetime, context: str, reason: str
    ) -> Optional[NoteResult]:
        try:
            with self.pipeline_scope() as pipeline:
                return await pipeline.generate_meeting_note(start, end, context, reason=reason)
        except MonitorWatchError as e:
            logger.error("Meeting note failed (%s): %s", reason, e.message)
            self.notifier.notify("MonitorWatch", f"Meeting note failed: {e.message}")
            return None

    async def _voice_note(self, effect: aud.RequestVoiceNote) -> None:
        async def job(reason: str) -> NoteResult:
            with self.pipeline_scope() as pipeline:
                return await pipeline.generate_meeting_note(
                    effect.start, effect.end, effect.context, reason=reason
                )

        await self.scheduler.trigger(effect.context, job=job)


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

def build_monitor(
    settings,
    scheduler: NoteScheduler,
    summarizer: Summarizer,
    session_factory: Callable,
    config: Optional[dict] = None,
    user_id: Optional[str] = None,
    foreground: Optional[ForegroundProvider] = None,
    screen: Optional[ScreenTextProvider] = None,
    speech: Optional[SpeechRecognizer] = None,
    notifier: Optional[Notifier] = None,
) -> Monitor:
    """Monitor for one user: thresholds and rule tables from Settings, profile and phrase from `config`."""
    user_id = user_id or settings.DEFAULT_USER_ID
    config = {**default_config(settings), **(config or {})}

    @contextmanager
    def repository_scope():
        db = session_factory()
        try:
            yield Repository(db, user_id)
        finally:
            db.close()

    @contextmanager
    def pipeline_scope():
        db = session_factory()
        try:
            yield build_user_pipeline(db, user_id, summarizer, settings)
        finally:
            db.close()

    return Monitor(
        repository_scope,
        pipeline_scope,
        scheduler,
        activity=act.ActivityStateMachine(
            config["performance_profile"],
            rules=ClassifierRules.from_settings(settings),
            idle_threshold_seconds=settings.IDLE_THRESHOLD_SECONDS,
            meeting_min_seconds=settings.MEETING_MIN_SECONDS,
        ),
        audio=aud.AudioCaptureStateMachine(trigger_phrase=config["voice_trigger_phrase"]),
        foreground=foreground,
        screen=screen,
        speech=speech,
        notifier=notifier,
    )
