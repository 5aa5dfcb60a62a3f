"""
Note scheduler: every generation trigger funnels through one cooldown gate.

Triggers
--------
  periodic timer      interval from NoteFrequency (1h / 2h / 4h / 24h)
  scheduled time      single shot at HH:MM; re-armed for the next day only
                      after its callback has completed
  sleep / shutdown    bounded by SHUTDOWN_WAIT_SECONDS, then abandoned
  manual / voice      explicit user action

Gate
----
ScheduleState.last_generation_at is read, compared and written without a
lock. A race can at worst let two generations through (an extra
note_number), which is tolerated. The stamp is only written when a note was
actually generated; "no data" and failures leave it untouched. While a
generation is in flight further triggers are skipped.

Failures from the pipeline (SummarizationError, AINotConfiguredError) are
logged, reported through the notifier and returned on the TriggerResult.
They are never retried here; the next trigger retries.
"""
from __future__ import annotations

import asyncio
import concurrent.futures
import enum
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from monitorwatch.core.errors import MonitorWatchError
from monitorwatch.services.capabilities import Notifier, NullNotifier
from monitorwatch.services.note_pipeline import NoteResult

logger = logging.getLogger(__name__)

_TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class NoteFrequency(str, enum.Enum):
    disabled = "disabled"
    every_hour = "every_hour"
    every_2_hours = "every_2_hours"
    every_4_hours = "every_4_hours"
    once_daily = "once_daily"
    at_scheduled_time = "at_scheduled_time"

    @property
    def interval_seconds(self) -> Optional[int]:
        return _INTERVALS.get(self)

    @property
    def label(self) -> str:
        return _LABELS[self]


_INTERVALS = {
    NoteFrequency.every_hour: 3600,
    NoteFrequency.every_2_hours: 7200,
    NoteFrequency.every_4_hours: 14400,
    NoteFrequency.once_daily: 86400,
}

_LABELS = {
    NoteFrequency.disabled: "Disabled",
    NoteFrequency.every_hour: "Every hour",
    NoteFrequency.every_2_hours: "Every 2 hours",
    NoteFrequency.every_4_hours: "Every 4 hours",
    NoteFrequency.once_daily: "Once daily",
    NoteFrequency.at_scheduled_time: "At scheduled time",
}


def parse_time_of_day(value: str) -> tuple[int, int]:
    match = _TIME_OF_DAY_RE.match(value or "")
    if match is None:
        raise ValueError(f"Invalid time of day {value!r}, expected HH:MM")
    return int(match.group(1)), int(match.group(2))


def next_occurrence(time_of_day: str, now: datetime) -> datetime:
    """Next wall-clock HH:MM strictly after `now`."""
    hour, minute = parse_time_of_day(time_of_day)
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return target


def _local_now() -> datetime:
    return datetime.now().astimezone()


# ---------------------------------------------------------------------------
# State / results
# ---------------------------------------------------------------------------

@dataclass
class ScheduleState:
    frequency: NoteFrequency = NoteFrequency.disabled
    scheduled_time: str = "22:00"
    generate_on_sleep: bool = True
    last_generation_at: Optional[datetime] = None
    in_flight: bool = False


class TriggerOutcome:
    GENERATED = "generated"
    NO_DATA = "no_data"
    COOLDOWN = "cooldown"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"
    DISABLED = "disabled"
    TIMED_OUT = "timed_out"


@dataclass
class TriggerResult:
    outcome: str
    reason: str
    result: Optional[NoteResult] = None
    error: Optional[MonitorWatchError] = None
    cooldown_remaining_seconds: int = field(default=0)


NoteJob = Callable[[str], Awaitable[NoteResult]]


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------

class NoteScheduler:

    def __init__(
        self,
        daily_job: NoteJob,
        state: Optional[ScheduleState] = None,
        cooldown_seconds: float = 1800.0,
        shutdown_wait_seconds: float = 30.0,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = _local_now,
    ):
        self.daily_job = daily_job
        self.state = state or ScheduleState()
        self.cooldown_seconds = cooldown_seconds
        self.shutdown_wait_seconds = shutdown_wait_seconds
        self.notifier = notifier or NullNotifier()
        self.clock = clock
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # -----------------------------------------------------------------------
    # Gate
    # -----------------------------------------------------------------------

    async def trigger(self, reason: str, job: Optional[NoteJob] = None) -> TriggerResult:
        logger.info("Generation trigger: %s", reason)
        now = self.clock()

        if self.state.in_flight:
            logger.info("Generation already in progress, skipping: %s", reason)
            return TriggerResult(TriggerOutcome.IN_FLIGHT, reason)

        last = self.state.last_generation_at
        if last is not None:
            elapsed = (now - last).total_seconds()
            if elapsed < self.cooldown_seconds:
                remaining = int(self.cooldown_seconds - elapsed)
                logger.info("Cooldown active (%ds remaining), skipping: %s", remaining, reason)
                return TriggerResult(
                    TriggerOutcome.COOLDOWN, reason, cooldown_remaining_seconds=remaining
                )

        self.state.in_flight = True
        try:
            result = await (job or self.daily_job)(reason)
        except MonitorWatchError as e:
            logger.error("Note generation failed (%s): %s", reason, e.message)
            self.notifier.notify("MonitorWatch", f"Note generation failed: {e.message}")
            return TriggerResult(TriggerOutcome.FAILED, reason, error=e)
        finally:
            self.state.in_flight = False

        if not result.generated:
            return TriggerResult(TriggerOutcome.NO_DATA, reason, result=result)

        self.state.last_generation_at = now
        self.notifier.notify("MonitorWatch", f"Note generated: {result.title}")
        return TriggerResult(TriggerOutcome.GENERATED, reason, result=result)

    # -----------------------------------------------------------------------
    # Timers
    # -----------------------------------------------------------------------

    def start(self) -> None:
        """Arm timers for the current frequency. Must run inside the event loop."""
        self._loop = asyncio.get_running_loop()
        self._rearm()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def update_schedule(
        self,
        frequency: Optional[NoteFrequency | str] = None,
        scheduled_time: Optional[str] = None,
        generate_on_sleep: Optional[bool] = None,
    ) -> ScheduleState:
        if frequency is not None:
            self.state.frequency = NoteFrequency(frequency)
        if scheduled_time is not None:
            parse_time_of_day(scheduled_time)
            self.state.scheduled_time = scheduled_time
        if generate_on_sleep is not None:
            self.state.generate_on_sleep = generate_on_sleep
        if self._loop is not None:
            self._rearm()
        return self.state

    def _rearm(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

        frequency = self.state.frequency
        if frequency.interval_seconds is not None:
            logger.info("Scheduler: %s", frequency.label)
            self._task = asyncio.create_task(self._interval_loop(frequency))
        elif frequency is NoteFrequency.at_scheduled_time:
            logger.info("Scheduler: daily at %s", self.state.scheduled_time)
            self._task = asyncio.create_task(self._scheduled_loop())
        else:
            logger.info("Scheduler: automatic generation disabled")

    async def _interval_loop(self, frequency: NoteFrequency) -> None:
        while True:
            await asyncio.sleep(frequency.interval_seconds)
            await self._fire(f"Scheduled ({frequency.label})")

    async def _scheduled_loop(self) -> None:
        while True:
            now = self.clock()
            target = next_occurrence(self.state.scheduled_time, now)
            logger.info("Next scheduled note at %s", target.strftime("%Y-%m-%d %H:%M"))
            await asyncio.sleep((target - now).total_seconds())
            await self._fire(f"Scheduled time ({self.state.scheduled_time})")

    async def _fire(self, reason: str) -> None:
        try:
            await self.trigger(reason)
        except Exception:
            # Keep the timer alive; the next tick retries.
            logger.exception("Scheduled generation crashed (%s)", reason)

    # -----------------------------------------------------------------------
    # Sleep / shutdown
    # -----------------------------------------------------------------------

    async def on_sleep(self, reason: str = "System sleep", job: Optional[NoteJob] = None) -> TriggerResult:
        if not self.state.generate_on_sleep:
            logger.info("Generate on sleep disabled, ignoring: %s", reason)
            return TriggerResult(TriggerOutcome.DISABLED, reason)
        try:
            return await asyncio.wait_for(self.trigger(reason, job), timeout=self.shutdown_wait_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Generation did not finish within %ds, giving up: %s",
                int(self.shutdown_wait_seconds), reason,
            )
            return TriggerResult(TriggerOutcome.TIMED_OUT, reason)

    async def on_shutdown(self, job: Optional[NoteJob] = None) -> TriggerResult:
        return await self.on_sleep("System shutdown", job)

    def on_sleep_blocking(self, reason: str = "System sleep") -> TriggerResult:
        """
        Called from a non-loop thread (OS power notification) that must not
        return before the note is written or the wait expires.
        """
        if self._loop is None:
            raise RuntimeError("scheduler not started")
        future = asyncio.run_coroutine_threadsafe(self.on_sleep(reason), self._loop)
        try:
            return future.result(timeout=self.shutdown_wait_seconds + 1)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.warning("Sleep hook timed out waiting for the event loop: %s", reason)
            return TriggerResult(TriggerOutcome.TIMED_OUT, reason)
