"""
Tests for the note scheduler's cooldown gate, sleep/shutdown bound and
schedule arithmetic. Time is injected; nothing here sleeps for real except
the bounded-wait test, which uses a tiny timeout.
"""
import asyncio
from datetime import datetime, timedelta

import pytest

from monitorwatch.core.errors import SummarizationError
from monitorwatch.services.note_pipeline import NoteResult, NoteStatus
from monitorwatch.services.scheduler import (
    NoteFrequency,
    NoteScheduler,
    ScheduleState,
    TriggerOutcome,
    next_occurrence,
    parse_time_of_day,
)


class Clock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self):
        self.messages: list[str] = []

    def beep(self) -> None:
        pass

    def notify(self, title: str, message: str) -> None:
        self.messages.append(message)


def generated_job(calls: list):
    async def job(reason: str) -> NoteResult:
        calls.append(reason)
        return NoteResult(status=NoteStatus.GENERATED, title="Work")
    return job


def make_scheduler(job, clock=None, **kwargs) -> NoteScheduler:
    return NoteScheduler(job, clock=clock or Clock(datetime(2024, 1, 15, 10, 0)), **kwargs)


class TestCooldown:
    def test_second_trigger_within_cooldown_is_skipped(self):
        calls: list = []
        clock = Clock(datetime(2024, 1, 15, 10, 0))
        scheduler = make_scheduler(generated_job(calls), clock)

        first = asyncio.run(scheduler.trigger("Manual"))
        clock.advance(minutes=5)
        second = asyncio.run(scheduler.trigger("System sleep"))

        assert first.outcome == TriggerOutcome.GENERATED
        assert second.outcome == TriggerOutcome.COOLDOWN
        assert second.cooldown_remaining_seconds == 25 * 60
        assert calls == ["Manual"]

    def test_trigger_after_cooldown_runs(self):
        calls: list = []
        clock = Clock(datetime(2024, 1, 15, 10, 0))
        scheduler = make_scheduler(generated_job(calls), clock)

        asyncio.run(scheduler.trigger("Manual"))
        clock.advance(minutes=31)
        result = asyncio.run(scheduler.trigger("Manual"))

        assert result.outcome == TriggerOutcome.GENERATED
        assert len(calls) == 2
        assert scheduler.state.last_generation_at == clock.now

    def test_no_data_does_not_start_cooldown(self):
        async def empty(reason):
            return NoteResult(status=NoteStatus.NO_DATA)

        scheduler = make_scheduler(empty)
        result = asyncio.run(scheduler.trigger("Manual"))

        assert result.outcome == TriggerOutcome.NO_DATA
        assert scheduler.state.last_generation_at is None

    def test_failure_is_reported_not_raised(self):
        async def failing(reason):
            raise SummarizationError("AI API error: 500", status_code=500, reason=reason)

        notifier = RecordingNotifier()
        scheduler = make_scheduler(failing, notifier=notifier)
        result = asyncio.run(scheduler.trigger("Scheduled (Every hour)"))

        assert result.outcome == TriggerOutcome.FAILED
        assert result.error.status_code == 500
        assert scheduler.state.last_generation_at is None
        assert not scheduler.state.in_flight
        assert any("failed" in m for m in notifier.messages)

    def test_in_flight_trigger_is_skipped(self):
        async def scenario():
            release = asyncio.Event()

            async def slow(reason):
                await release.wait()
                return NoteResult(status=NoteStatus.GENERATED, title="Slow")

            scheduler = make_scheduler(slow)
            first = asyncio.create_task(scheduler.trigger("Manual"))
            await asyncio.sleep(0)
            second = await scheduler.trigger("Voice Command (faz a nota)")
            release.set()
            return await first, second

        first, second = asyncio.run(scenario())
        assert first.outcome == TriggerOutcome.GENERATED
        assert second.outcome == TriggerOutcome.IN_FLIGHT

    def test_explicit_job_overrides_daily_job(self):
        daily_calls: list = []
        voice_calls: list = []
        scheduler = make_scheduler(generated_job(daily_calls))
        asyncio.run(scheduler.trigger("Voice Command (x)", job=generated_job(voice_calls)))
        assert daily_calls == []
        assert voice_calls == ["Voice Command (x)"]


class TestSleepAndShutdown:
    def test_sleep_disabled(self):
        calls: list = []
        scheduler = make_scheduler(generated_job(calls), state=ScheduleState(generate_on_sleep=False))
        result = asyncio.run(scheduler.on_sleep())
        assert result.outcome == TriggerOutcome.DISABLED
        assert calls == []

    def test_shutdown_uses_reason(self):
        calls: list = []
        scheduler = make_scheduler(generated_job(calls))
        result = asyncio.run(scheduler.on_shutdown())
        assert result.outcome == TriggerOutcome.GENERATED
        assert calls == ["System shutdown"]

    def test_sleep_wait_is_bounded(self):
        async def hangs(reason):
            await asyncio.sleep(10)
            return NoteResult(status=NoteStatus.GENERATED)

        scheduler = make_scheduler(hangs, shutdown_wait_seconds=0.05)
        result = asyncio.run(scheduler.on_sleep())

        assert result.outcome == TriggerOutcome.TIMED_OUT
        assert not scheduler.state.in_flight

    def test_blocking_hook_from_another_thread(self):
        calls: list = []
        scheduler = make_scheduler(generated_job(calls))

        async def scenario():
            scheduler.start()
            result = await asyncio.to_thread(scheduler.on_sleep_blocking)
            await scheduler.stop()
            return result

        result = asyncio.run(scenario())
        assert result.outcome == TriggerOutcome.GENERATED
        assert calls == ["System sleep"]

    def test_blocking_hook_requires_started_scheduler(self):
        scheduler = make_scheduler(generated_job([]))
        with pytest.raises(RuntimeError):
            scheduler.on_sleep_blocking()


class TestTimers:
    def test_update_schedule_rearms(self):
        async def scenario():
            scheduler = make_scheduler(generated_job([]))
            scheduler.start()
            assert scheduler._task is None
            scheduler.update_schedule(frequency="every_hour")
            armed = scheduler._task
            scheduler.update_schedule(frequency=NoteFrequency.at_scheduled_time, scheduled_time="08:30")
            rearmed = scheduler._task
            await asyncio.sleep(0)
            await scheduler.stop()
            return armed, rearmed, scheduler

        armed, rearmed, scheduler = asyncio.run(scenario())
        assert armed is not None and rearmed is not None
        assert armed is not rearmed
        assert armed.cancelled()
        assert scheduler.state.scheduled_time == "08:30"

    def test_invalid_scheduled_time(self):
        scheduler = make_scheduler(generated_job([]))
        with pytest.raises(ValueError):
            scheduler.update_schedule(scheduled_time="25:00")


class TestScheduleArithmetic:
    def test_next_occurrence_later_today(self):
        now = datetime(2024, 1, 15, 10, 0)
        assert next_occurrence("22:00", now) == datetime(2024, 1, 15, 22, 0)

    def test_next_occurrence_rolls_to_tomorrow(self):
        now = datetime(2024, 1, 15, 22, 0)
        assert next_occurrence("22:00", now) == datetime(2024, 1, 16, 22, 0)

    @pytest.mark.parametrize("value", ["7:00", "24:00", "12:60", "", "noon"])
    def test_parse_time_of_day_rejects(self, value):
        with pytest.raises(ValueError):
            parse_time_of_day(value)

    def test_frequency_intervals(self):
        assert NoteFrequency.every_2_hours.interval_seconds == 7200
        assert NoteFrequency.disabled.interval_seconds is None
        assert NoteFrequency.at_scheduled_time.interval_seconds is None
        assert NoteFrequency.every_4_hours.label == "Every 4 hours"
