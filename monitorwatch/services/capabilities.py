"""
OS capability boundaries consumed by the monitor runtime.

Platform adapters (window enumeration, screen OCR, speech recognition,
notification center) live outside this package and implement these
protocols. Tests pass in-memory fakes.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ForegroundProvider(Protocol):
    def current_foreground(self) -> tuple[str, str, str]:
        """Return (app_id, app_name, window_title) of the frontmost window."""
        ...

    def idle_seconds(self) -> float:
        ...


@runtime_checkable
class ScreenTextProvider(Protocol):
    async def capture_screen_text(self) -> Optional[str]:
        """OCR text of the frontmost window, or None when capture is unavailable."""
        ...


@runtime_checkable
class SpeechRecognizer(Protocol):
    """Drives one recognition task; results come back as audio events."""

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


@runtime_checkable
class Notifier(Protocol):
    def beep(self) -> None:
        ...

    def notify(self, title: str, message: str) -> None:
        ...


class NullNotifier:
    """Used when no desktop notifier is attached (headless server)."""

    def beep(self) -> None:
        pass

    def notify(self, title: str, message: str) -> None:
        pass
