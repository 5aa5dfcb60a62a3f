"""
User config store: one JSON document per user, merged over defaults.

Rules:
- Reads always return a complete document: stored keys override the
  defaults derived from Settings, unknown stored keys are dropped.
- Updates are partial: only keys present (and not None) in the update are
  changed; everything else stored is kept.

Public API
----------
default_config(settings)                     -> dict
get_config(db, user_id, settings)            -> dict
update_config(db, user_id, updates, settings) -> dict
"""
from __future__ import annotations

import json
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from monitorwatch.models.user_config import UserConfigEntry

CONFIG_KEYS = (
    "performance_profile",
    "voice_trigger_phrase",
    "note_language",
    "note_frequency",
    "scheduled_time",
    "generate_on_sleep",
    "vault_path",
)


def default_config(settings) -> dict[str, Any]:
    return {
        "performance_profile": settings.PERFORMANCE_PROFILE,
        "voice_trigger_phrase": settings.VOICE_TRIGGER_PHRASE,
        "note_language": settings.NOTE_LANGUAGE,
        "note_frequency": settings.NOTE_FREQUENCY,
        "scheduled_time": settings.SCHEDULED_TIME,
        "generate_on_sleep": settings.GENERATE_ON_SLEEP,
        "vault_path": settings.VAULT_PATH,
    }


def _jload(text: Optional[str]) -> dict[str, Any]:
    if not text:
        return {}
    try:
        result = json.loads(text)
        return result if isinstance(result, dict) else {}
    except (ValueError, TypeError):
        return {}


def _stored(db: Session, user_id: str) -> tuple[Optional[UserConfigEntry], dict[str, Any]]:
    row = db.get(UserConfigEntry, user_id)
    return row, _jload(row.payload if row else None)


def get_config(db: Session, user_id: str, settings) -> dict[str, Any]:
    _, stored = _stored(db, user_id)
    merged = default_config(settings)
    merged.update({k: v for k, v in stored.items() if k in CONFIG_KEYS})
    return merged


def update_config(db: Session, user_id: str, updates: dict[str, Any], settings) -> dict[str, Any]:
    row, stored = _stored(db, user_id)
    stored.update({k: v for k, v in updates.items() if k in CONFIG_KEYS and v is not None})
    payload = json.dumps(stored, ensure_ascii=False)

    if row is None:
        db.add(UserConfigEntry(user_id=user_id, payload=payload))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            row = db.get(UserConfigEntry, user_id)
            if row is None:
                raise
            row.payload = payload
            db.commit()
    else:
        row.payload = payload
        db.commit()

    return get_config(db, user_id, settings)
