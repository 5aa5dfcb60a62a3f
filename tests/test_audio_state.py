"""
Unit tests for the audio capture state machine: hot word, silence flush,
bounded restart.
"""
import logging
from datetime import datetime, timedelta, timezone

from monitorwatch.services.audio_state import (
    AudioCaptureStateMachine,
    AudioPhase,
    Beep,
    FinalResult,
    FlushTranscript,
    Notify,
    Partial,
    RecognitionError,
    RequestVoiceNote,
    Reset,
    ResetSilenceTimer,
    RestartElapsed,
    ScheduleRestart,
    SetRecordingEnabled,
    SilenceTimeout,
    Start,
    StartRecognition,
    Stop,
    StopRecognition,
    TerminalFailure,
    VOICE_NOTE_WINDOW,
)

T0 = datetime(2024, 1, 15, 14, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def of_type(effects, cls):
    return [e for e in effects if isinstance(e, cls)]


def listening(recording: bool = True) -> AudioCaptureStateMachine:
    machine = AudioCaptureStateMachine(trigger_phrase="faz a nota")
    machine.tick(SetRecordingEnabled(recording))
    machine.tick(Start())
    return machine


class TestLifecycle:
    def test_start_begins_recognition_once(self):
        machine = AudioCaptureStateMachine()
        state, effects = machine.tick(Start())
        assert state.phase == AudioPhase.LISTENING
        assert effects == [StartRecognition()]
        assert machine.tick(Start())[1] == []

    def test_events_while_stopped_are_ignored(self):
        machine = AudioCaptureStateMachine()
        state, effects = machine.tick(Partial("hello", at(0)))
        assert effects == []
        assert state.phase == AudioPhase.STOPPED

    def test_stop_flushes_pending_transcript(self):
        machine = listening()
        machine.tick(Partial("we agreed on friday", at(0)))
        state, effects = machine.tick(Stop("privacy"))
        assert state.phase == AudioPhase.STOPPED
        assert of_type(effects, FlushTranscript)[0].text == "we agreed on friday"
        assert of_type(effects, StopRecognition)


class TestSilence:
    def test_partial_resets_timer(self):
        machine = listening()
        _, effects = machine.tick(Partial("hello", at(0)))
        assert effects == [ResetSilenceTimer(3.0)]

    def test_silence_flushes_when_recording(self):
        machine = listening(recording=True)
        machine.tick(Partial("first words", at(0)))
        machine.tick(Partial("first words and more", at(2)))
        state, effects = machine.tick(SilenceTimeout(at(5)))
        flush = of_type(effects, FlushTranscript)
        assert flush == [FlushTranscript("first words and more", at(0), at(5))]
        assert flush[0].duration_seconds == 5
        assert state.transcript == ""

    def test_silence_does_not_persist_when_not_recording(self):
        machine = listening(recording=False)
        machine.tick(Partial("private chat", at(0)))
        _, effects = machine.tick(SilenceTimeout(at(4)))
        assert of_type(effects, FlushTranscript) == []


class TestHotWord:
    def test_trigger_phrase_requests_voice_note(self):
        machine = listening()
        machine.tick(Partial("ok", at(0)))
        state, effects = machine.tick(Partial("ok FAZ A NOTA agora", at(10)))

        assert of_type(effects, Beep)
        assert of_type(effects, Notify)
        requests = of_type(effects, RequestVoiceNote)
        assert requests == [RequestVoiceNote(at(10) - VOICE_NOTE_WINDOW, at(10), "Voice Command (faz a nota)")]
        assert effects[-2:] == [StopRecognition(), StartRecognition()]
        assert state.transcript == ""

    def test_trigger_fires_once_per_utterance(self):
        machine = listening()
        _, first = machine.tick(Partial("faz a nota", at(0)))
        _, second = machine.tick(Partial("agora sim", at(1)))
        assert len(of_type(first, RequestVoiceNote)) == 1
        assert of_type(second, RequestVoiceNote) == []


class TestRestart:
    def test_error_schedules_backoff(self):
        machine = listening()
        state, effects = machine.tick(RecognitionError("no speech", at(0)))
        assert state.phase == AudioPhase.RESTARTING
        assert of_type(effects, ScheduleRestart) == [ScheduleRestart(1, 1.5)]

        state, effects = machine.tick(RestartElapsed(1))
        assert state.phase == AudioPhase.LISTENING
        assert effects == [StartRecognition()]

    def test_stale_restart_is_ignored(self):
        machine = listening()
        machine.tick(RecognitionError("a", at(0)))
        machine.tick(RestartElapsed(1))
        machine.tick(RecognitionError("b", at(1)))
        state, effects = machine.tick(RestartElapsed(1))
        assert effects == []
        assert state.phase == AudioPhase.RESTARTING

    def test_partial_resets_attempts(self):
        machine = listening()
        machine.tick(RecognitionError("a", at(0)))
        machine.tick(RestartElapsed(1))
        state, _ = machine.tick(Partial("back again", at(2)))
        assert state.attempt == 0

    def test_final_result_flushes_then_restarts(self):
        machine = listening()
        state, effects = machine.tick(FinalResult("closing remarks", at(3)))
        assert of_type(effects, FlushTranscript)[0].text == "closing remarks"
        assert state.phase == AudioPhase.RESTARTING

    def test_sixth_failure_is_terminal_and_logged_once(self, caplog):
        machine = listening()
        with caplog.at_level(logging.ERROR, logger="monitorwatch.services.audio_state"):
            for attempt in range(1, 6):
                state, _ = machine.tick(RecognitionError("err", at(attempt)))
                assert state.phase == AudioPhase.RESTARTING
                machine.tick(RestartElapsed(attempt))
            state, effects = machine.tick(RecognitionError("err", at(6)))

        assert state.phase == AudioPhase.STOPPED
        assert state.fatal
        assert of_type(effects, TerminalFailure)
        assert of_type(effects, ScheduleRestart) == []
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1

    def test_fatal_ignores_start_until_reset(self):
        machine = listening()
        for attempt in range(1, 7):
            machine.tick(RecognitionError("err", at(attempt)))
            machine.tick(RestartElapsed(attempt))
        assert machine.tick(Start())[1] == []

        state, _ = machine.tick(Reset())
        assert not state.fatal
        assert state.recording
        assert machine.tick(Start())[1] == [StartRecognition()]
