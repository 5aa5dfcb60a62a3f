"""
Vault writer: drops generated notes into a Markdown vault folder.

Existing files are never overwritten. A taken name gets " (HH-MM-SS)"
appended, then a counter if that is taken too.
"""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DAILY_DIR = "Daily Notes"
NOTES_DIR = "Notes"
MEETINGS_DIR = "Meetings"


def daily_note_path(title: str, at: datetime) -> str:
    return f"{DAILY_DIR}/{at:%Y-%m-%d %H}h{at:%M} - {title}.md"


def quick_note_path(title: str, at: datetime) -> str:
    return f"{NOTES_DIR}/{at:%Y-%m-%d %H}h{at:%M} - {title}.md"


def meeting_note_path(title: str, at: datetime) -> str:
    return f"{MEETINGS_DIR}/{at:%Y-%m-%d} - {title}.md"


class VaultWriter:

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser()

    def _candidates(self, target: Path, at: datetime):
        yield target
        stem = f"{target.stem} ({at:%H-%M-%S})"
        yield target.with_name(f"{stem}{target.suffix}")
        n = 2
        while True:
            yield target.with_name(f"{stem} {n}{target.suffix}")
            n += 1

    def write(self, relative_path: str, content: str, at: Optional[datetime] = None) -> Path:
        """Write `content` under the vault root and return the path actually used."""
        at = at or datetime.now()
        target = self.root / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)

        for candidate in self._candidates(target, at):
            try:
                with open(candidate, "x", encoding="utf-8") as fh:
                    fh.write(content)
            except FileExistsError:
                continue
            if candidate != target:
                logger.info("Vault file %s exists, wrote %s instead", target.name, candidate.name)
            else:
                logger.info("Note saved to vault: %s", candidate)
            return candidate
