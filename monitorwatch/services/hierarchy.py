"""
Hierarchical summarizer: 10-minute chunk → hour → day.

Rules:
- A chunk with zero observations is skipped: no call, no row, "" returned.
- A stored non-empty chunk summary is returned as-is and never recomputed.
- Chunks of one hour are summarized concurrently; the hour summary joins the
  non-empty ones in slot order with their slot labels, regardless of which
  call finished first. If one chunk call fails, the others are cancelled
  and the error propagates; no hour summary is stored.
- Hour summaries are upserted (newest wins) so a partially-summarized hour
  can be resumed later.

Public API
----------
summarize_chunk(day, hour, slot, reason)  -> str
summarize_hour(day, hour, reason)         -> str
ensure_day(day, reason)                   -> list[HourlySummary]
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional

from monitorwatch.models.summary import HourlySummary
from monitorwatch.services.prompts import chunk_instructions, render_observations, slot_label
from monitorwatch.services.repository import Repository
from monitorwatch.services.summarizer import Summarizer
from monitorwatch.services.time_bucketer import SLOTS_PER_HOUR

logger = logging.getLogger(__name__)


class HierarchicalSummarizer:

    def __init__(
        self,
        repo: Repository,
        summarizer: Summarizer,
        chunk_model: Optional[str] = None,
        language: str = "en",
    ):
        self.repo = repo
        self.summarizer = summarizer
        self.chunk_model = chunk_model
        self.language = language

    async def summarize_chunk(
        self, day: date, hour: int, slot: int, reason: Optional[str] = None
    ) -> str:
        existing = self.repo.get_chunk_summary(day, hour, slot)
        if existing is not None and existing.summary:
            return existing.summary

        observations = self.repo.observations_for_slot(day, hour, slot)
        if not observations:
            return ""

        text = await self.summarizer.summarize(
            render_observations(observations),
            chunk_instructions(self.language),
            model=self.chunk_model,
            max_tokens=1024,
            temperature=0.5,
            reason=reason,
        )
        self.repo.upsert_chunk_summary(day, hour, slot, text, len(observations))
        logger.debug("Chunk %s %s summarized (%d observations)", day, slot_label(hour, slot), len(observations))
        return text

    async def summarize_hour(self, day: date, hour: int, reason: Optional[str] = None) -> str:
        tasks = [
            asyncio.create_task(self.summarize_chunk(day, hour, slot, reason))
            for slot in range(SLOTS_PER_HOUR)
        ]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            # One failed chunk fails the hour; the others must not outlive it.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        parts = [
            f"[{slot_label(hour, slot)}] {text}"
            for slot, text in enumerate(results)
            if text
        ]
        if not parts:
            return ""

        combined = "\n\n".join(parts)
        self.repo.upsert_hour_summary(day, hour, combined)
        logger.info("Hour summary %s %02d:00 stored (%d chunks)", day, hour, len(parts))
        return combined

    async def ensure_day(self, day: date, reason: Optional[str] = None) -> list[HourlySummary]:
        """Bring every hour with data up to date, then return the day's hour summaries in order."""
        for hour in self.repo.hours_with_data(day):
            await self.summarize_hour(day, hour, reason)
        return self.repo.get_hour_summaries(day)
