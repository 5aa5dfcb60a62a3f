"""
Activity state machine: foreground changes and window-title polls in,
typed side effects out.

States
------
  idle        nothing observed yet
  active      an app is in the foreground (current_app set)
  in_meeting  an audio-mode app is in the foreground; an ephemeral
              MeetingSession records when it started and its context

The machine never returns to idle on its own: when the user is idle or the
foreground app is ignored it simply emits nothing.

Transition (`tick(event) -> (state, effects)`)
----------------------------------------------
For every acted-on signal:
  1. classify (app id, window title, profile)
  2. ignore → StopAudio (privacy hard stop), nothing else; an open
     meeting session stays open
  3. leaving audio mode while in a meeting closes the session; if it lasted
     at least `meeting_min_seconds` a MeetingNoteRequested effect is
     emitted, shorter sessions are discarded (anti-flicker)
  4. audio and not in a meeting → open a MeetingSession
  5. full / screenshot → CaptureScreen (the runtime falls back to a
     metadata-only observation when screen text is unavailable);
     other modes → EmitActivity
  6. StartAudio + SetRecording(full or audio)

Title polls are dropped when the user has been idle longer than
`idle_threshold_seconds` or when the title is empty or unchanged.
Foreground changes to the app already in front are dropped.

No timers, no I/O: the runtime (services/monitor.py) interprets effects.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Union

from monitorwatch.models.observation import CaptureMode
from monitorwatch.services.capture_classifier import (
    DEFAULT_RULES,
    ClassifierRules,
    Profile,
    classify,
    parse_profile,
)

logger = logging.getLogger(__name__)


class Phase:
    IDLE = "idle"
    ACTIVE = "active"
    IN_MEETING = "in_meeting"


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MeetingSession:
    started_at: datetime
    context: str


@dataclass(frozen=True)
class ActivityState:
    current_app: Optional[str] = None
    last_title: str = ""
    meeting: Optional[MeetingSession] = None

    @property
    def phase(self) -> str:
        if self.meeting is not None:
            return Phase.IN_MEETING
        if self.current_app is not None:
            return Phase.ACTIVE
        return Phase.IDLE


# ---------------------------------------------------------------------------
# Inbound events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ForegroundChanged:
    app_id: str
    app_name: str
    window_title: str
    at: datetime


@dataclass(frozen=True)
class WindowTitlePolled:
    app_id: str
    app_name: str
    window_title: str
    at: datetime
    idle_seconds: float = 0.0


@dataclass(frozen=True)
class VoiceNoteTriggered:
    """The hot-word path already produced a note covering the meeting so far."""
    at: datetime


ActivityEvent = Union[ForegroundChanged, WindowTitlePolled, VoiceNoteTriggered]


# ---------------------------------------------------------------------------
# Side effects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EmitActivity:
    app_id: str
    app_name: str
    window_title: str
    capture_mode: CaptureMode
    at: datetime


@dataclass(frozen=True)
class CaptureScreen:
    app_id: str
    app_name: str
    window_title: str
    capture_mode: CaptureMode
    at: datetime


@dataclass(frozen=True)
class StartAudio:
    pass


@dataclass(frozen=True)
class StopAudio:
    reason: str


@dataclass(frozen=True)
class SetRecording:
    enabled: bool


@dataclass(frozen=True)
class MeetingNoteRequested:
    started_at: datetime
    ended_at: datetime
    context: str


ActivityEffect = Union[
    EmitActivity, CaptureScreen, StartAudio, StopAudio, SetRecording, MeetingNoteRequested
]


# ---------------------------------------------------------------------------
# Machine
# ---------------------------------------------------------------------------

class ActivityStateMachine:

    def __init__(
        self,
        profile: object = Profile.balanced,
        rules: ClassifierRules = DEFAULT_RULES,
        idle_threshold_seconds: float = 60.0,
        meeting_min_seconds: float = 120.0,
    ) -> None:
        self.profile = parse_profile(profile)
        self.rules = rules
        self.idle_threshold_seconds = idle_threshold_seconds
        self.meeting_min_seconds = meeting_min_seconds
        self.state = ActivityState()

    def set_profile(self, profile: object) -> None:
        self.profile = parse_profile(profile)

    def tick(self, event: ActivityEvent) -> tuple[ActivityState, list[ActivityEffect]]:
        self.state, effects = self.transition(self.state, event)
        return self.state, effects

    def transition(
        self, state: ActivityState, event: ActivityEvent
    ) -> tuple[ActivityState, list[ActivityEffect]]:
        if isinstance(event, ForegroundChanged):
            if event.app_id == state.current_app:
                return state, []
            return self._observe(state, event.app_id, event.app_name, event.window_title, event.at)

        if isinstance(event, WindowTitlePolled):
            if event.idle_seconds > self.idle_threshold_seconds:
                logger.debug("User idle for %ds, skipping capture", int(event.idle_seconds))
                return state, []
            if not event.window_title or event.window_title == state.last_title:
                return state, []
            return self._observe(state, event.app_id, event.app_name, event.window_title, event.at)

        if isinstance(event, VoiceNoteTriggered):
            if state.meeting is None:
                return state, []
            return replace(state, meeting=replace(state.meeting, started_at=event.at)), []

        raise TypeError(f"Unsupported activity event: {event!r}")

    def _observe(
        self,
        state: ActivityState,
        app_id: str,
        app_name: str,
        title: str,
        at: datetime,
    ) -> tuple[ActivityState, list[ActivityEffect]]:
        mode = classify(app_id, title, self.profile, self.rules)
        effects: list[ActivityEffect] = []
        meeting = state.meeting
        base = replace(state, current_app=app_id, last_title=title)

        if mode is CaptureMode.ignore:
            logger.info("Privacy stop: %s is ignored, audio capture halted", app_name or app_id)
            effects.append(StopAudio(reason="privacy"))
            return base, effects

        if meeting is not None and mode is not CaptureMode.audio:
            effects.extend(self._close_meeting(meeting, at))
            meeting = None

        logger.info("Activity: %s | %s | mode=%s", app_name or app_id, title, mode.value)

        if mode is CaptureMode.audio:
            if meeting is None:
                logger.info("Meeting detected via audio mode (%s)", title)
                meeting = MeetingSession(started_at=at, context=title)
            elif title:
                meeting = replace(meeting, context=title)

        if mode in (CaptureMode.full, CaptureMode.screenshot):
            effects.append(CaptureScreen(app_id, app_name, title, mode, at))
        else:
            effects.append(EmitActivity(app_id, app_name, title, mode, at))

        effects.append(StartAudio())
        effects.append(SetRecording(enabled=mode in (CaptureMode.full, CaptureMode.audio)))
        return replace(base, meeting=meeting), effects

    def _close_meeting(self, meeting: MeetingSession, at: datetime) -> list[ActivityEffect]:
        duration = (at - meeting.started_at).total_seconds()
        if duration < self.meeting_min_seconds:
            logger.info("Meeting ended after %ds, below threshold, discarded", int(duration))
            return []
        logger.info("Meeting ended. Duration: %ds", int(duration))
        return [MeetingNoteRequested(started_at=meeting.started_at, ended_at=at, context=meeting.context)]
