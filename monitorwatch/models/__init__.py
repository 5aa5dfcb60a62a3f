from .observation import Activity, CaptureMode, Transcript
from .summary import ChunkSummary, HourlySummary
from .note import Note, NoteKind
from .user_config import UserConfigEntry

__all__ = [
    "Activity",
    "CaptureMode",
    "Transcript",
    "ChunkSummary",
    "HourlySummary",
    "Note",
    "NoteKind",
    "UserConfigEntry",
]
