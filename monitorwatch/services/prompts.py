"""
Instruction builders and observation renderers for the summarizer.

Instructions are written in English; the output language is stated on its
own line so every note type honours NOTE_LANGUAGE the same way.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

from monitorwatch.models.observation import Activity, Transcript
from monitorwatch.services.time_bucketer import SLOT_MINUTES

LANGUAGES = {
    "en": "English",
    "pt": "Portuguese (Brazil)",
}

_OCR_HINT = (
    "Screen content comes from OCR and may contain recognition errors "
    "(digits or symbols in place of letters, mangled app names). "
    "Fix obvious mistakes and use the correct app and tool names."
)


def language_line(language: str) -> str:
    return f"Write the output in {LANGUAGES.get(language, LANGUAGES['en'])}."


def slot_label(hour: int, slot: int) -> str:
    start = slot * SLOT_MINUTES
    end = start + SLOT_MINUTES
    end_label = f"{hour:02d}:{end:02d}" if end < 60 else f"{(hour + 1) % 24:02d}:00"
    return f"{hour:02d}:{start:02d}-{end_label}"


# ---------------------------------------------------------------------------
# Observation rendering
# ---------------------------------------------------------------------------

def render_observations(observations: Iterable) -> str:
    """Window titles (deduplicated, in order), screen text, then audio."""
    titles: list[str] = []
    screen: list[str] = []
    audio: list[str] = []
    for obs in observations:
        if isinstance(obs, Activity):
            label = " - ".join(p for p in (obs.app_name, obs.window_title) if p)
            if label and label not in titles:
                titles.append(label)
            if obs.ocr_text:
                screen.append(obs.ocr_text)
        elif isinstance(obs, Transcript) and obs.text:
            audio.append(obs.text)

    return (
        "## Window Titles\n" + ("\n".join(titles) or "None")
        + "\n\n## Screen Content\n" + ("\n".join(screen) or "None")
        + "\n\n## Audio/Conversations\n" + ("\n".join(audio) or "None")
    )


def render_hour_summaries(summaries: Iterable) -> str:
    return "\n\n".join(f"## {s.hour:02d}:00\n{s.summary}" for s in summaries if s.summary)


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------

def chunk_instructions(language: str) -> str:
    return "\n".join([
        "Analyze this 10-minute activity chunk and summarize it in one short paragraph:",
        "what was being worked on or studied, key topics or tasks, and any conversations.",
        _OCR_HINT,
        "Output only the summary, no headers or formatting.",
        language_line(language),
    ])


def daily_instructions(day: date, language: str, generated_at: datetime) -> str:
    return "\n".join([
        f"Create a daily note for {day.isoformat()} from the hourly summaries below.",
        "Start with a single H1 title naming the main subject of the day (not a date).",
        f"Right after the title add: *Generated: {generated_at:%Y-%m-%d %H:%M}*",
        "Then sections: Summary, Activities (chronological), Key Learnings, Next Steps.",
        "End with relevant #tags. No emojis.",
        "Output only the Markdown note.",
        language_line(language),
    ])


def meeting_instructions(context: str, start: datetime, language: str) -> str:
    return "\n".join([
        f"Create a meeting note for '{context}' starting {start:%Y-%m-%d %H:%M}.",
        "Start with a single H1 title naming the meeting topic.",
        "Then sections: Participants (if identifiable), Discussion, Decisions, Action Items.",
        "Base it on the conversation transcript; screen content is secondary.",
        _OCR_HINT,
        "Output only the Markdown note.",
        language_line(language),
    ])


def quick_instructions(minutes_back: int, language: str) -> str:
    return "\n".join([
        f"Create a short note covering the last {minutes_back} minutes of activity.",
        "Start with a single H1 title naming the main subject.",
        "Then 1-2 paragraphs and a bullet list of key points.",
        _OCR_HINT,
        "Output only the Markdown note.",
        language_line(language),
    ])
