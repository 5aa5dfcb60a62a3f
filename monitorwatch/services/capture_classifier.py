"""
Capture classifier: maps (app id, window context, profile) to a CaptureMode.

Rules are evaluated top to bottom, first match wins:

  1. PRIVACY  deny-list substring in app id or context  → ignore (any profile)
  2. MEETING  conferencing tool substring               → audio
  3. PROFILE matrix
       economy   everything else                        → metadata
       balanced  work → screenshot, media → metadata, else metadata
       quality   media → audio, work → full, else full

Matching is case-insensitive substring search against both the app id and
the window context. The term tables are data (`ClassifierRules`), so test
fixtures and settings can substitute their own.

`classify` is total and deterministic: unknown apps fall through to the
profile default, unknown profiles are treated as balanced, and None inputs
are treated as empty strings. It never raises.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from monitorwatch.models.observation import CaptureMode


class Profile(str, enum.Enum):
    economy = "economy"
    balanced = "balanced"
    quality = "quality"


# Older config files stored low / mid / high.
_PROFILE_ALIASES = {
    "low": Profile.economy,
    "mid": Profile.balanced,
    "high": Profile.quality,
}


def parse_profile(value: object) -> Profile:
    if isinstance(value, Profile):
        return value
    text = str(value or "").strip().lower()
    if text in _PROFILE_ALIASES:
        return _PROFILE_ALIASES[text]
    try:
        return Profile(text)
    except ValueError:
        return Profile.balanced


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

DEFAULT_PRIVACY_TERMS = ("password", "1password", "bitwarden", "keychain", "bank")
DEFAULT_MEETING_TERMS = ("zoom", "meet.google", "google meet", "teams", "webex", "facetime")
DEFAULT_WORK_TERMS = (
    "comet", "github", "gitlab", "vscode", "visual studio code", "xcode", "pycharm",
    "figma", "chatgpt", "claude", "perplexity", "stack overflow", "stackoverflow",
)
DEFAULT_MEDIA_TERMS = ("youtube", "netflix", "twitch", "spotify", "prime video", "music")


@dataclass(frozen=True)
class ClassifierRules:
    privacy_terms: tuple[str, ...] = field(default=DEFAULT_PRIVACY_TERMS)
    meeting_terms: tuple[str, ...] = field(default=DEFAULT_MEETING_TERMS)
    work_terms: tuple[str, ...] = field(default=DEFAULT_WORK_TERMS)
    media_terms: tuple[str, ...] = field(default=DEFAULT_MEDIA_TERMS)

    @classmethod
    def from_settings(cls, settings) -> "ClassifierRules":
        """Build from Settings, keeping the defaults for any table left unset."""
        def _terms(value, default):
            if value is None:
                return default
            return tuple(t.strip().lower() for t in value if t and t.strip())

        return cls(
            privacy_terms=_terms(settings.PRIVACY_TERMS, DEFAULT_PRIVACY_TERMS),
            meeting_terms=_terms(settings.MEETING_TERMS, DEFAULT_MEETING_TERMS),
            work_terms=_terms(settings.WORK_TERMS, DEFAULT_WORK_TERMS),
            media_terms=_terms(settings.MEDIA_TERMS, DEFAULT_MEDIA_TERMS),
        )


DEFAULT_RULES = ClassifierRules()


def _matches(terms: tuple[str, ...], haystacks: tuple[str, ...]) -> bool:
    return any(term and term in text for term in terms for text in haystacks)


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def classify(
    app_id: Optional[str],
    window_context: Optional[str],
    profile: object = Profile.balanced,
    rules: ClassifierRules = DEFAULT_RULES,
) -> CaptureMode:
    """Return the capture mode for one foreground observation."""
    haystacks = (str(app_id or "").lower(), str(window_context or "").lower())
    prof = parse_profile(profile)

    if _matches(rules.privacy_terms, haystacks):
        return CaptureMode.ignore

    if _matches(rules.meeting_terms, haystacks):
        return CaptureMode.audio

    if prof is Profile.economy:
        return CaptureMode.metadata

    if prof is Profile.quality:
        # Work apps and everything unmatched get full capture.
        if _matches(rules.media_terms, haystacks):
            return CaptureMode.audio
        return CaptureMode.full

    # balanced: passive media and everything unmatched stay metadata
    if _matches(rules.work_terms, haystacks):
        return CaptureMode.screenshot
    return CaptureMode.metadata
