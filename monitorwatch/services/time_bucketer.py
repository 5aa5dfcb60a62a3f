"""
Time bucketer: resolves an event instant to a stable local bucket key.

Resolution order
----------------
1. Caller-supplied local fields (date + hour, optional minute) win: the
   client's wall clock is authoritative.
2. Otherwise a trailing UTC offset on the timestamp ("-03:00", "+0530",
   "Z") is applied to the UTC instant and the local fields are read off
   the shifted instant.
3. Otherwise the instant is treated as UTC. This is the legacy degraded
   mode; it is logged every time it triggers.

Range queries
-------------
Storage date functions work in UTC, so a query over an instant range with
an unknown caller timezone must enumerate every local date the range could
touch (`plausible_local_dates`), fetch the union by local_date, and filter
precisely by instant in application code (`within`).

Public API
----------
slot_for_minute(minute)                               -> int
parse_timestamp(value)                                -> (datetime UTC, timedelta | None)
resolve_bucket(timestamp, local_date, local_hour, …)  -> ResolvedTimestamp
plausible_local_dates(start, end)                     -> list[date]
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from monitorwatch.core.errors import InvalidTimestampError

logger = logging.getLogger(__name__)

SLOTS_PER_HOUR = 6
SLOT_MINUTES = 10

# -12 .. +14 in 6-hour steps, plus the +14 edge itself.
PLAUSIBLE_OFFSET_HOURS = (-12, -6, 0, 6, 12, 14)

_TIMESTAMP_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[T ](?P<hour>\d{2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d{1,9}))?)?)?"
    r"\s*(?P<offset>Z|z|[+-]\d{2}:?\d{2})?$"
)


class ResolutionSource:
    CLIENT = "client"
    OFFSET = "offset"
    UTC_FALLBACK = "utc_fallback"


@dataclass(frozen=True)
class BucketKey:
    local_date: date
    local_hour: int
    local_minute: int

    @property
    def slot(self) -> int:
        return slot_for_minute(self.local_minute)


@dataclass(frozen=True)
class ResolvedTimestamp:
    instant: datetime   # timezone-aware, UTC
    key: BucketKey
    source: str         # ResolutionSource value


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def slot_for_minute(minute: int) -> int:
    """10-minute slot index 0..5."""
    return min(max(int(minute), 0), 59) // SLOT_MINUTES


def as_utc(value: datetime) -> datetime:
    """Normalize to aware UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def within(instant: datetime, start: datetime, end: datetime) -> bool:
    return as_utc(start) <= as_utc(instant) <= as_utc(end)


def _parse_offset(text: str) -> timedelta:
    if text in ("Z", "z"):
        return timedelta(0)
    sign = -1 if text[0] == "-" else 1
    digits = text[1:].replace(":", "")
    hours, minutes = int(digits[:2]), int(digits[2:])
    if hours > 14 or minutes > 59:
        raise ValueError(f"offset out of range: {text}")
    return sign * timedelta(hours=hours, minutes=minutes)


def parse_timestamp(value: str) -> tuple[datetime, Optional[timedelta]]:
    """
    Parse an ISO-8601 timestamp.
    Returns the UTC instant and the explicit offset, or None when the
    string carries no offset (the instant is then read as UTC).
    """
    if not isinstance(value, str):
        raise InvalidTimestampError(repr(value))
    match = _TIMESTAMP_RE.match(value.strip())
    if match is None:
        raise InvalidTimestampError(value)

    fraction = (match.group("fraction") or "0")[:6].ljust(6, "0")
    try:
        wall = datetime.combine(
            date.fromisoformat(match.group("date")),
            datetime.min.time(),
        ).replace(
            hour=int(match.group("hour") or 0),
            minute=int(match.group("minute") or 0),
            second=int(match.group("second") or 0),
            microsecond=int(fraction),
        )
        offset = _parse_offset(match.group("offset")) if match.group("offset") else None
    except ValueError as exc:
        raise InvalidTimestampError(value, str(exc)) from exc

    if offset is None:
        return wall.replace(tzinfo=timezone.utc), None
    return (wall - offset).replace(tzinfo=timezone.utc), offset


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def _key_from(instant_utc: datetime, offset: timedelta) -> BucketKey:
    shifted = instant_utc + offset
    return BucketKey(
        local_date=shifted.date(),
        local_hour=shifted.hour,
        local_minute=shifted.minute,
    )


def resolve_bucket(
    timestamp: Union[str, datetime],
    local_date: Union[date, str, None] = None,
    local_hour: Optional[int] = None,
    local_minute: Optional[int] = None,
) -> ResolvedTimestamp:
    """Resolve `timestamp` to (instant, bucket key). See module docstring for the order."""
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            instant, offset = timestamp.replace(tzinfo=timezone.utc), None
        else:
            instant, offset = timestamp.astimezone(timezone.utc), timestamp.utcoffset()
    else:
        instant, offset = parse_timestamp(timestamp)

    if local_date is not None and local_hour is not None:
        if isinstance(local_date, str):
            local_date = date.fromisoformat(local_date)
        if local_minute is None:
            # Whole-hour offsets share the minute with UTC; half-hour ones use the offset.
            local_minute = _key_from(instant, offset or timedelta(0)).local_minute
        key = BucketKey(local_date=local_date, local_hour=int(local_hour), local_minute=int(local_minute))
        return ResolvedTimestamp(instant=instant, key=key, source=ResolutionSource.CLIENT)

    if offset is not None:
        return ResolvedTimestamp(
            instant=instant, key=_key_from(instant, offset), source=ResolutionSource.OFFSET
        )

    logger.warning(
        "No UTC offset or local fields on timestamp %s; bucketing as UTC", timestamp
    )
    return ResolvedTimestamp(
        instant=instant, key=_key_from(instant, timedelta(0)), source=ResolutionSource.UTC_FALLBACK
    )


def plausible_local_dates(start: datetime, end: datetime) -> list[date]:
    """
    Every local date an instant in [start, end] could fall on, for any UTC
    offset in PLAUSIBLE_OFFSET_HOURS. Sorted, no duplicates.
    """
    start_utc, end_utc = as_utc(start), as_utc(end)
    if end_utc < start_utc:
        start_utc, end_utc = end_utc, start_utc

    candidates: set[date] = set()
    for hours in PLAUSIBLE_OFFSET_HOURS:
        shift = timedelta(hours=hours)
        candidates.add((start_utc + shift).date())
        candidates.add((end_utc + shift).date())

    first, last = min(candidates), max(candidates)
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]
