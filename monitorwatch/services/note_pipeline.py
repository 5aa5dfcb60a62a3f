"""
Note pipeline: turns stored observations into persisted notes.

Rules:
- No observations for the requested date / range is a no-op result
  (status "no_data"), not an error.
- Upstream AI failures propagate as SummarizationError / AINotConfiguredError.
- Every generation inserts a NEW Note row with the next note_number for its
  date; earlier notes are never overwritten.
- Daily notes go through the chunk → hour hierarchy. Meeting and quick notes
  work directly on the raw observation range.
- Titles come from the first Markdown H1 of the AI output, made
  filename-safe, with a deterministic fallback.

Public API
----------
NotePipeline.generate_note(day, reason)                       -> NoteResult
NotePipeline.generate_meeting_note(start, end, context, ...)  -> NoteResult
NotePipeline.generate_quick_note(minutes_back, reason)        -> NoteResult
extract_title(content) / sanitize_title(text)                 -> str
build_user_pipeline(db, user_id, summarizer, settings)        -> NotePipeline
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from monitorwatch.core.errors import InvalidTimeRangeError
from monitorwatch.core.text import sanitize_text
from monitorwatch.models.note import Note, NoteKind
from monitorwatch.services import prompts, vault as vault_paths
from monitorwatch.services.hierarchy import HierarchicalSummarizer
from monitorwatch.services.repository import Repository
from monitorwatch.services.summarizer import Summarizer
from monitorwatch.services.time_bucketer import as_utc
from monitorwatch.services.user_config import get_config
from monitorwatch.services.vault import VaultWriter

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
MAX_CONTEXT_LENGTH = 500
MAX_RANGE = timedelta(hours=24)

_H1_RE = re.compile(r"^#[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)
_UNSAFE_RE = re.compile(r'[<>:"/\\|?*#]')
_SPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class NoteStatus:
    GENERATED = "generated"
    NO_DATA = "no_data"


@dataclass
class NoteResult:
    status: str
    note: Optional[Note] = None
    title: str = ""
    filename: Optional[str] = None    # vault-relative path
    vault_path: Optional[str] = None  # where the file was actually written

    @property
    def generated(self) -> bool:
        return self.status == NoteStatus.GENERATED


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------

def sanitize_title(text: str) -> str:
    cleaned = _SPACE_RE.sub(" ", _UNSAFE_RE.sub("", text or "")).strip()
    return cleaned[:MAX_TITLE_LENGTH].strip()


def extract_title(content: str) -> str:
    match = _H1_RE.search(content or "")
    return sanitize_title(match.group(1)) if match else ""


def _local(instant: datetime) -> datetime:
    """Wall-clock time on this machine, naive."""
    return as_utc(instant).astimezone().replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class NotePipeline:

    def __init__(
        self,
        repo: Repository,
        summarizer: Summarizer,
        hierarchy: Optional[HierarchicalSummarizer] = None,
        language: str = "en",
        daily_model: Optional[str] = None,
        meeting_model: Optional[str] = None,
        vault: Optional[VaultWriter] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repo = repo
        self.summarizer = summarizer
        self.hierarchy = hierarchy or HierarchicalSummarizer(repo, summarizer, language=language)
        self.language = language
        self.daily_model = daily_model
        self.meeting_model = meeting_model
        self.vault = vault
        self.clock = clock

    def _persist(
        self,
        day: date,
        kind: NoteKind,
        content: str,
        title: str,
        reason: Optional[str],
        relative_path: str,
        at: datetime,
    ) -> NoteResult:
        note = self.repo.insert_note(day, kind, title, content, reason)
        result = NoteResult(status=NoteStatus.GENERATED, note=note, title=title, filename=relative_path)
        if self.vault is not None:
            try:
                written = self.vault.write(relative_path, content, at)
            except OSError as e:
                # The note row stays; only the vault copy is missing.
                logger.error(
                    "Vault write failed for %s (%s): %s", relative_path, reason or "unspecified", e
                )
            else:
                self.repo.set_vault_path(note, str(written))
                result.vault_path = str(written)
        logger.info(
            "%s note #%d generated for %s (%s)",
            kind.value.capitalize(), note.note_number, day, reason or "unspecified",
        )
        return result

    async def generate_note(self, day: date, reason: Optional[str] = None) -> NoteResult:
        if self.repo.count_observations(day) == 0:
            logger.info("No activity data for %s, skipping note (%s)", day, reason or "unspecified")
            return NoteResult(status=NoteStatus.NO_DATA)

        summaries = await self.hierarchy.ensure_day(day, reason)
        text = prompts.render_hour_summaries(summaries)
        if not text:
            return NoteResult(status=NoteStatus.NO_DATA)

        now = self.clock()
        content = await self.summarizer.summarize(
            text,
            prompts.daily_instructions(day, self.language, now),
            model=self.daily_model,
            reason=reason,
        )
        title = extract_title(content) or f"Daily Note {day.isoformat()}"
        return self._persist(
            day, NoteKind.daily, content, title, reason,
            vault_paths.daily_note_path(title, now), now,
        )

    async def generate_meeting_note(
        self,
        start: datetime,
        end: datetime,
        context: str,
        reason: Optional[str] = None,
    ) -> NoteResult:
        if as_utc(end) < as_utc(start):
            raise InvalidTimeRangeError(start, end, "end time must be after start time")
        if as_utc(end) - as_utc(start) > MAX_RANGE:
            raise InvalidTimeRangeError(start, end, "range cannot exceed 24 hours")

        context = sanitize_text(context, MAX_CONTEXT_LENGTH).strip() or "Meeting"
        reason = reason or context
        observations = self.repo.observations_in_range(start, end)
        if not observations:
            logger.info("No activity between %s and %s, skipping meeting note", start, end)
            return NoteResult(status=NoteStatus.NO_DATA)

        local_start = _local(start)
        content = await self.summarizer.summarize(
            prompts.render_observations(observations),
            prompts.meeting_instructions(context, local_start, self.language),
            model=self.meeting_model,
            reason=reason,
        )
        title = extract_title(content) or f"Meeting {local_start:%Y-%m-%d %H}h{local_start:%M}"
        return self._persist(
            local_start.date(), NoteKind.meeting, content, title, reason,
            vault_paths.meeting_note_path(title, local_start), local_start,
        )

    async def generate_quick_note(
        self,
        minutes_back: int,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> NoteResult:
        end = as_utc(now) if now else datetime.now(timezone.utc)
        start = end - timedelta(minutes=minutes_back)
        if minutes_back <= 0 or end - start > MAX_RANGE:
            raise InvalidTimeRangeError(start, end, "minutes_back must be between 1 and 1440")

        observations = self.repo.observations_in_range(start, end)
        if not observations:
            logger.info("No activity in the last %d minutes, skipping quick note", minutes_back)
            return NoteResult(status=NoteStatus.NO_DATA)

        local_end = _local(end)
        content = await self.summarizer.summarize(
            prompts.render_observations(observations),
            prompts.quick_instructions(minutes_back, self.language),
            model=self.daily_model,
            reason=reason,
        )
        title = extract_title(content) or f"Quick Note {local_end:%Y-%m-%d %H}h{local_end:%M}"
        return self._persist(
            local_end.date(), NoteKind.quick, content, title, reason,
            vault_paths.quick_note_path(title, local_end), local_end,
        )


def build_pipeline(
    db,
    user_id: str,
    summarizer: Summarizer,
    settings,
    language: Optional[str] = None,
    vault_path: Optional[str] = None,
) -> NotePipeline:
    """Wire a pipeline for one user over one session."""
    repo = Repository(db, user_id)
    language = language or settings.NOTE_LANGUAGE
    vault_root = settings.VAULT_PATH if vault_path is None else vault_path
    return NotePipeline(
        repo,
        summarizer,
        hierarchy=HierarchicalSummarizer(repo, summarizer, settings.CHUNK_MODEL, language),
        language=language,
        daily_model=settings.DAILY_MODEL,
        meeting_model=settings.MEETING_MODEL,
        vault=VaultWriter(vault_root) if vault_root else None,
    )


def build_user_pipeline(db, user_id: str, summarizer: Summarizer, settings) -> NotePipeline:
    """Like build_pipeline, with the user's stored language and vault path."""
    config = get_config(db, user_id, settings)
    return build_pipeline(
        db,
        user_id,
        summarizer,
        settings,
        language=config["note_language"],
        vault_path=config["vault_path"],
    )
