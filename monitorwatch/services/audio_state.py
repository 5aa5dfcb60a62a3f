"""
Audio capture state machine: one continuous speech-recognition session with
hot-word detection and bounded restart.

Phases: stopped → listening → restarting(attempt) → listening ...

  Partial(text)       reset the 3 s silence timer, attempt := 0, and test
                      the text for the trigger phrase. On a match: flush,
                      beep + notify, request a note over the last 2 hours,
                      and restart the session so the same utterance does
                      not fire twice.
  SilenceTimeout      flush the accumulated transcript (only persisted
                      while recording is enabled) and start a fresh session.
  RecognitionError /  attempt += 1; restart after 1.5 s * attempt. Once
  FinalResult         attempt exceeds MAX_RESTART_ATTEMPTS the machine stops
                      and is marked fatal. Only `Reset` clears that.
  SetRecording(flag)  toggles persistence of flushed transcripts only; the
                      hot-word listener keeps running.
  Stop                hard stop (privacy); the listener stops too.

Timers are effects (ResetSilenceTimer, ScheduleRestart); the runtime feeds
SilenceTimeout / RestartElapsed back in when they fire. A RestartElapsed
whose attempt does not match the current one is stale and ignored.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional, Union

logger = logging.getLogger(__name__)

SILENCE_TIMEOUT_SECONDS = 3.0
RESTART_BASE_DELAY_SECONDS = 1.5
MAX_RESTART_ATTEMPTS = 5
VOICE_NOTE_WINDOW = timedelta(hours=2)


class AudioPhase:
    STOPPED = "stopped"
    LISTENING = "listening"
    RESTARTING = "restarting"


@dataclass(frozen=True)
class AudioState:
    phase: str = AudioPhase.STOPPED
    attempt: int = 0
    transcript: str = ""
    transcript_started_at: Optional[datetime] = None
    recording: bool = False
    fatal: bool = False


# ---------------------------------------------------------------------------
# Inbound events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Stop:
    reason: str = "stopped"


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class SetRecordingEnabled:
    enabled: bool


@dataclass(frozen=True)
class Partial:
    text: str
    at: datetime


@dataclass(frozen=True)
class SilenceTimeout:
    at: datetime


@dataclass(frozen=True)
class RecognitionError:
    message: str
    at: datetime


@dataclass(frozen=True)
class FinalResult:
    text: str
    at: datetime


@dataclass(frozen=True)
class RestartElapsed:
    attempt: int


AudioEvent = Union[
    Start, Stop, Reset, SetRecordingEnabled, Partial, SilenceTimeout,
    RecognitionError, FinalResult, RestartElapsed,
]


# ---------------------------------------------------------------------------
# Side effects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StartRecognition:
    pass


@dataclass(frozen=True)
class StopRecognition:
    pass


@dataclass(frozen=True)
class ResetSilenceTimer:
    seconds: float


@dataclass(frozen=True)
class CancelSilenceTimer:
    pass


@dataclass(frozen=True)
class FlushTranscript:
    text: str
    started_at: datetime
    ended_at: datetime

    @property
    def duration_seconds(self) -> int:
        return max(int((self.ended_at - self.started_at).total_seconds()), 0)


@dataclass(frozen=True)
class Beep:
    pass


@dataclass(frozen=True)
class Notify:
    title: str
    message: str


@dataclass(frozen=True)
class RequestVoiceNote:
    start: datetime
    end: datetime
    context: str


@dataclass(frozen=True)
class ScheduleRestart:
    attempt: int
    delay_seconds: float


@dataclass(frozen=True)
class TerminalFailure:
    message: str


AudioEffect = Union[
    StartRecognition, StopRecognition, ResetSilenceTimer, CancelSilenceTimer,
    FlushTranscript, Beep, Notify, RequestVoiceNote, ScheduleRestart, TerminalFailure,
]


def voice_context(phrase: str) -> str:
    return f"Voice Command ({phrase})"


# ---------------------------------------------------------------------------
# Machine
# ---------------------------------------------------------------------------

class AudioCaptureStateMachine:

    def __init__(
        self,
        trigger_phrase: str = "faz a nota",
        silence_timeout_seconds: float = SILENCE_TIMEOUT_SECONDS,
        max_attempts: int = MAX_RESTART_ATTEMPTS,
    ) -> None:
        self.trigger_phrase = trigger_phrase
        self.silence_timeout_seconds = silence_timeout_seconds
        self.max_attempts = max_attempts
        self.state = AudioState()

    def tick(self, event: AudioEvent) -> tuple[AudioState, list[AudioEffect]]:
        self.state, effects = self.transition(self.state, event)
        return self.state, effects

    def transition(
        self, state: AudioState, event: AudioEvent
    ) -> tuple[AudioState, list[AudioEffect]]:
        if isinstance(event, Start):
            if state.fatal:
                logger.debug("Audio capture start ignored: engine stopped after repeated failures")
                return state, []
            if state.phase != AudioPhase.STOPPED:
                return state, []
            logger.info("Audio capture started")
            return replace(state, phase=AudioPhase.LISTENING, attempt=0), [StartRecognition()]

        if isinstance(event, Stop):
            if state.phase == AudioPhase.STOPPED:
                return state, []
            logger.info("Audio capture stopped (%s)", event.reason)
            effects: list[AudioEffect] = self._flush(state, None)
            effects += [CancelSilenceTimer(), StopRecognition()]
            return replace(state, phase=AudioPhase.STOPPED, attempt=0, **_cleared()), effects

        if isinstance(event, Reset):
            logger.info("Audio capture reset")
            return AudioState(recording=state.recording), [CancelSilenceTimer(), StopRecognition()]

        if isinstance(event, SetRecordingEnabled):
            return replace(state, recording=event.enabled), []

        if state.phase == AudioPhase.STOPPED:
            return state, []

        if isinstance(event, Partial):
            return self._on_partial(state, event)

        if isinstance(event, SilenceTimeout):
            if state.phase != AudioPhase.LISTENING or not state.transcript:
                return state, []
            effects = self._flush(state, event.at)
            effects.append(StopRecognition())
            effects.append(StartRecognition())
            return replace(state, **_cleared()), effects

        if isinstance(event, (RecognitionError, FinalResult)):
            return self._on_failure(state, event)

        if isinstance(event, RestartElapsed):
            if state.phase != AudioPhase.RESTARTING or event.attempt != state.attempt:
                return state, []
            return replace(state, phase=AudioPhase.LISTENING), [StartRecognition()]

        raise TypeError(f"Unsupported audio event: {event!r}")

    # ------------------------------------------------------------------

    def _on_partial(self, state: AudioState, event: Partial) -> tuple[AudioState, list[AudioEffect]]:
        if state.phase != AudioPhase.LISTENING:
            return state, []
        started_at = state.transcript_started_at or event.at
        state = replace(state, attempt=0, transcript=event.text, transcript_started_at=started_at)
        effects: list[AudioEffect] = [ResetSilenceTimer(self.silence_timeout_seconds)]

        phrase = self.trigger_phrase.strip().lower()
        if not phrase or phrase not in event.text.lower():
            return state, effects

        logger.info("Voice trigger detected: %r", self.trigger_phrase)
        effects = self._flush(state, event.at)
        effects += [
            CancelSilenceTimer(),
            Beep(),
            Notify("MonitorWatch", "Generating note..."),
            RequestVoiceNote(
                start=event.at - VOICE_NOTE_WINDOW,
                end=event.at,
                context=voice_context(self.trigger_phrase),
            ),
            StopRecognition(),
            StartRecognition(),
        ]
        return replace(state, **_cleared()), effects

    def _on_failure(
        self, state: AudioState, event: Union[RecognitionError, FinalResult]
    ) -> tuple[AudioState, list[AudioEffect]]:
        effects: list[AudioEffect] = []
        if isinstance(event, FinalResult):
            if event.text:
                state = replace(state, transcript=event.text,
                                transcript_started_at=state.transcript_started_at or event.at)
            effects += self._flush(state, event.at)
        else:
            logger.warning("Speech recognition error: %s", event.message)
        state = replace(state, **_cleared())

        attempt = state.attempt + 1
        if attempt > self.max_attempts:
            message = f"Speech recognition failed {self.max_attempts} times in a row; audio capture stopped"
            logger.error(message)
            effects += [CancelSilenceTimer(), StopRecognition(), TerminalFailure(message)]
            return replace(state, phase=AudioPhase.STOPPED, attempt=attempt, fatal=True), effects

        delay = RESTART_BASE_DELAY_SECONDS * attempt
        logger.info("Restarting speech recognition in %.1fs (attempt %d)", delay, attempt)
        effects += [CancelSilenceTimer(), StopRecognition(), ScheduleRestart(attempt, delay)]
        return replace(state, phase=AudioPhase.RESTARTING, attempt=attempt), effects

    def _flush(self, state: AudioState, at: Optional[datetime]) -> list[AudioEffect]:
        text = state.transcript.strip()
        if not text or not state.recording or state.transcript_started_at is None:
            return []
        return [FlushTranscript(text=text, started_at=state.transcript_started_at,
                                ended_at=at or state.transcript_started_at)]


def _cleared() -> dict:
    return {"transcript": "", "transcript_started_at": None}
