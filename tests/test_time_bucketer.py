"""
Unit tests for the time bucketer: offset-aware local keys, client fields,
UTC fallback and range date enumeration.
"""
import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from monitorwatch.core.errors import InvalidTimestampError
from monitorwatch.services.time_bucketer import (
    ResolutionSource,
    parse_timestamp,
    plausible_local_dates,
    resolve_bucket,
    slot_for_minute,
    within,
)


class TestOffsetResolution:
    @pytest.mark.parametrize("timestamp, expected_date, hour, slot", [
        ("2024-01-15T23:50:00-03:00", date(2024, 1, 15), 23, 5),
        ("2024-01-16T02:50:00Z", date(2024, 1, 16), 2, 5),
        ("2024-01-15T09:05:00+05:30", date(2024, 1, 15), 9, 0),
        ("2024-01-15T00:15:00+14:00", date(2024, 1, 15), 0, 1),
        ("2024-01-15T23:59:59-12:00", date(2024, 1, 15), 23, 5),
        ("2024-03-10T14:30:00.123456-0500", date(2024, 3, 10), 14, 3),
    ])
    def test_local_fields_follow_the_offset(self, timestamp, expected_date, hour, slot):
        resolved = resolve_bucket(timestamp)
        assert resolved.source == ResolutionSource.OFFSET
        assert resolved.key.local_date == expected_date
        assert resolved.key.local_hour == hour
        assert resolved.key.slot == slot

    def test_instant_is_utc(self):
        resolved = resolve_bucket("2024-01-15T23:50:00-03:00")
        assert resolved.instant == datetime(2024, 1, 16, 2, 50, tzinfo=timezone.utc)

    def test_aware_datetime_input(self):
        tz = timezone(timedelta(hours=-3))
        resolved = resolve_bucket(datetime(2024, 1, 15, 23, 50, tzinfo=tz))
        assert resolved.key.local_date == date(2024, 1, 15)
        assert resolved.key.local_hour == 23


class TestClientFields:
    def test_client_fields_win_over_offset(self):
        resolved = resolve_bucket(
            "2024-01-16T02:50:00Z", local_date="2024-01-15", local_hour=23, local_minute=50
        )
        assert resolved.source == ResolutionSource.CLIENT
        assert resolved.key.local_date == date(2024, 1, 15)
        assert resolved.key.local_hour == 23
        assert resolved.key.slot == 5

    def test_missing_minute_taken_from_instant(self):
        resolved = resolve_bucket("2024-01-16T02:25:00Z", local_date=date(2024, 1, 15), local_hour=23)
        assert resolved.key.local_minute == 25

    def test_date_without_hour_is_ignored(self):
        resolved = resolve_bucket("2024-01-16T02:25:00Z", local_date=date(2024, 1, 15))
        assert resolved.source == ResolutionSource.OFFSET
        assert resolved.key.local_date == date(2024, 1, 16)


class TestUtcFallback:
    def test_no_offset_buckets_as_utc_and_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="monitorwatch.services.time_bucketer"):
            resolved = resolve_bucket("2024-01-15T23:50:00")
        assert resolved.source == ResolutionSource.UTC_FALLBACK
        assert resolved.key.local_date == date(2024, 1, 15)
        assert resolved.key.local_hour == 23
        assert any("bucketing as UTC" in r.getMessage() for r in caplog.records)

    def test_offset_does_not_warn(self, caplog):
        with caplog.at_level(logging.WARNING, logger="monitorwatch.services.time_bucketer"):
            resolve_bucket("2024-01-15T23:50:00-03:00")
        assert not caplog.records


class TestParsing:
    @pytest.mark.parametrize("value", ["", "yesterday", "2024-13-01T00:00:00Z", "2024-01-15T25:00:00Z"])
    def test_invalid_timestamps_raise(self, value):
        with pytest.raises(InvalidTimestampError):
            parse_timestamp(value)

    def test_offset_out_of_range(self):
        with pytest.raises(InvalidTimestampError):
            parse_timestamp("2024-01-15T10:00:00+15:00")

    def test_non_string_raises(self):
        with pytest.raises(InvalidTimestampError):
            parse_timestamp(12345)

    def test_returns_offset(self):
        instant, offset = parse_timestamp("2024-01-15T10:00:00+0530")
        assert offset == timedelta(hours=5, minutes=30)
        assert instant == datetime(2024, 1, 15, 4, 30, tzinfo=timezone.utc)


class TestSlots:
    @pytest.mark.parametrize("minute, slot", [(0, 0), (9, 0), (10, 1), (35, 3), (50, 5), (59, 5)])
    def test_slot_for_minute(self, minute, slot):
        assert slot_for_minute(minute) == slot


class TestPlausibleDates:
    def test_spans_both_sides_of_utc(self):
        start = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        end = datetime(2024, 1, 15, 13, 0, tzinfo=timezone.utc)
        assert plausible_local_dates(start, end) == [date(2024, 1, 15), date(2024, 1, 16)]

    def test_late_utc_reaches_previous_day(self):
        start = datetime(2024, 1, 15, 2, 0, tzinfo=timezone.utc)
        end = datetime(2024, 1, 15, 3, 0, tzinfo=timezone.utc)
        assert plausible_local_dates(start, end) == [date(2024, 1, 14), date(2024, 1, 15)]

    def test_range_without_gaps(self):
        start = datetime(2024, 1, 15, 0, 0, tzinfo=timezone.utc)
        end = datetime(2024, 1, 17, 23, 0, tzinfo=timezone.utc)
        dates = plausible_local_dates(start, end)
        assert dates[0] == date(2024, 1, 14)
        assert dates[-1] == date(2024, 1, 18)
        assert len(dates) == 5

    def test_within_mixes_naive_and_aware(self):
        start = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        end = start + timedelta(hours=1)
        assert within(datetime(2024, 1, 15, 12, 30), start, end)
        assert not within(datetime(2024, 1, 15, 13, 30), start, end)
