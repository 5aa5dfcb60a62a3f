"""
Tests for note generation: numbering, no-data results, meeting ranges,
titles and vault output.
"""
import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from monitorwatch.core.errors import InvalidTimeRangeError
from monitorwatch.models.note import NoteKind
from monitorwatch.models.observation import CaptureMode
from monitorwatch.services.note_pipeline import (
    NotePipeline,
    NoteStatus,
    extract_title,
    sanitize_title,
)
from monitorwatch.services.time_bucketer import resolve_bucket
from monitorwatch.services.vault import VaultWriter

DAY = date(2024, 1, 15)
MEETING_START = datetime(2024, 1, 15, 17, 0, tzinfo=timezone.utc)


class UntitledSummarizer:
    async def summarize(self, text, instructions, model=None, max_tokens=2048, temperature=0.7, reason=None):
        return "Just a paragraph without a heading."


def seed_day(repo):
    for minute in (5, 25, 45):
        repo.record_activity(
            resolve_bucket(f"2024-01-15T14:{minute:02d}:00-03:00"),
            app_bundle_id="com.google.Chrome",
            app_name="Chrome",
            window_title=f"docs {minute}",
            capture_mode=CaptureMode.metadata,
        )


def seed_meeting(repo):
    repo.record_transcript(
        resolve_bucket(MEETING_START + timedelta(minutes=10)),
        text="Let's ship on Friday.",
        duration_seconds=4,
    )
    repo.record_activity(
        resolve_bucket(MEETING_START + timedelta(minutes=12)),
        app_bundle_id="us.zoom.xos",
        app_name="zoom.us",
        window_title="Zoom Meeting",
        capture_mode=CaptureMode.audio,
    )


class TestTitles:
    def test_extract_first_h1(self):
        assert extract_title("intro\n# Sprint: Review?\n## Sub") == "Sprint Review"

    def test_no_h1(self):
        assert extract_title("## Only a subheading") == ""

    def test_blank_h1_does_not_borrow_next_line(self):
        assert extract_title("# \nBody text") == ""

    def test_sanitize_caps_length(self):
        assert len(sanitize_title("word " * 50)) <= 100

    def test_sanitize_strips_unsafe_characters(self):
        assert sanitize_title('a/b\\c<d>e|f*g"h#i') == "abcdefghi"


class TestDailyNote:
    def test_note_numbers_increment(self, repo, fake_summarizer):
        seed_day(repo)
        pipeline = NotePipeline(repo, fake_summarizer)

        first = asyncio.run(pipeline.generate_note(DAY, reason="Manual"))
        second = asyncio.run(pipeline.generate_note(DAY, reason="Manual"))

        assert first.status == NoteStatus.GENERATED
        assert first.note.note_number == 1
        assert second.note.note_number == 2
        assert [n.note_number for n in repo.get_notes(DAY)] == [1, 2]

    def test_second_generation_reuses_chunks(self, repo, fake_summarizer):
        seed_day(repo)
        pipeline = NotePipeline(repo, fake_summarizer)

        asyncio.run(pipeline.generate_note(DAY))
        after_first = len(fake_summarizer.calls)
        asyncio.run(pipeline.generate_note(DAY))

        assert after_first == 4  # three chunks + the daily note
        assert len(fake_summarizer.calls) == after_first + 1

    def test_no_data_is_not_an_error(self, repo, fake_summarizer):
        result = asyncio.run(NotePipeline(repo, fake_summarizer).generate_note(date(2024, 2, 1)))
        assert result.status == NoteStatus.NO_DATA
        assert not result.generated
        assert fake_summarizer.calls == []

    def test_title_and_kind(self, repo, fake_summarizer):
        seed_day(repo)
        result = asyncio.run(NotePipeline(repo, fake_summarizer).generate_note(DAY, reason="Scheduled"))
        assert result.title == "Focused Work Session"
        assert result.note.kind == NoteKind.daily
        assert result.note.reason == "Scheduled"

    def test_fallback_title(self, repo):
        seed_day(repo)
        result = asyncio.run(NotePipeline(repo, UntitledSummarizer()).generate_note(DAY))
        assert result.title == "Daily Note 2024-01-15"

    def test_writes_to_vault(self, repo, fake_summarizer, tmp_path):
        seed_day(repo)
        clock = lambda: datetime(2024, 1, 15, 22, 0)
        pipeline = NotePipeline(repo, fake_summarizer, vault=VaultWriter(tmp_path), clock=clock)

        result = asyncio.run(pipeline.generate_note(DAY))

        expected = tmp_path / "Daily Notes" / "2024-01-15 22h00 - Focused Work Session.md"
        assert result.vault_path == str(expected)
        assert expected.read_text(encoding="utf-8").startswith("# Focused Work Session")
        assert result.note.vault_path == str(expected)

    def test_vault_failure_keeps_note(self, repo, fake_summarizer, tmp_path, caplog):
        seed_day(repo)
        blocker = tmp_path / "vault"
        blocker.write_text("not a directory", encoding="utf-8")
        pipeline = NotePipeline(repo, fake_summarizer, vault=VaultWriter(blocker))

        result = asyncio.run(pipeline.generate_note(DAY, reason="Manual"))

        assert result.generated
        assert result.vault_path is None
        assert result.note.vault_path is None
        assert [n.note_number for n in repo.get_notes(DAY)] == [1]
        assert "Vault write failed" in caplog.text


class TestMeetingNote:
    def test_end_before_start_rejected(self, repo, fake_summarizer):
        pipeline = NotePipeline(repo, fake_summarizer)
        with pytest.raises(InvalidTimeRangeError):
            asyncio.run(pipeline.generate_meeting_note(
                MEETING_START, MEETING_START - timedelta(minutes=1), "Standup"
            ))

    def test_range_over_24_hours_rejected(self, repo, fake_summarizer):
        pipeline = NotePipeline(repo, fake_summarizer)
        with pytest.raises(InvalidTimeRangeError):
            asyncio.run(pipeline.generate_meeting_note(
                MEETING_START, MEETING_START + timedelta(hours=24, seconds=1), "Standup"
            ))

    def test_empty_range_is_no_data(self, repo, fake_summarizer):
        pipeline = NotePipeline(repo, fake_summarizer)
        result = asyncio.run(pipeline.generate_meeting_note(
            MEETING_START, MEETING_START + timedelta(hours=1), "Standup"
        ))
        assert result.status == NoteStatus.NO_DATA

    def test_meeting_note_generated(self, repo, fake_summarizer):
        seed_meeting(repo)
        pipeline = NotePipeline(repo, fake_summarizer, meeting_model="meeting-model")

        result = asyncio.run(pipeline.generate_meeting_note(
            MEETING_START, MEETING_START + timedelta(hours=1), "Zoom Meeting"
        ))

        assert result.generated
        assert result.note.kind == NoteKind.meeting
        assert result.note.reason == "Zoom Meeting"
        assert result.note.date == MEETING_START.astimezone().date()
        call = fake_summarizer.calls[0]
        assert call["model"] == "meeting-model"
        assert "Let's ship on Friday." in call["text"]
        assert "'Zoom Meeting'" in call["instructions"]

    def test_blank_context_defaults(self, repo, fake_summarizer):
        seed_meeting(repo)
        pipeline = NotePipeline(repo, fake_summarizer)
        asyncio.run(pipeline.generate_meeting_note(
            MEETING_START, MEETING_START + timedelta(hours=1), "   "
        ))
        assert "'Meeting'" in fake_summarizer.calls[0]["instructions"]


class TestQuickNote:
    def test_quick_note_over_recent_window(self, repo, fake_summarizer):
        seed_meeting(repo)
        now = MEETING_START + timedelta(minutes=20)
        result = asyncio.run(NotePipeline(repo, fake_summarizer).generate_quick_note(15, now=now))
        assert result.generated
        assert result.note.kind == NoteKind.quick
        assert "last 15 minutes" in fake_summarizer.calls[0]["instructions"]

    def test_quick_note_window_excludes_older_rows(self, repo, fake_summarizer):
        seed_meeting(repo)
        now = MEETING_START + timedelta(hours=3)
        result = asyncio.run(NotePipeline(repo, fake_summarizer).generate_quick_note(30, now=now))
        assert result.status == NoteStatus.NO_DATA

    @pytest.mark.parametrize("minutes", [0, -5, 1441])
    def test_minutes_out_of_range(self, repo, fake_summarizer, minutes):
        with pytest.raises(InvalidTimeRangeError):
            asyncio.run(NotePipeline(repo, fake_summarizer).generate_quick_note(minutes))
