"""Pomodoro settings and data-location configuration.

Settings live in the persistent store under ``pomodoro_settings``::

    settings = PomodoroSettings.from_dict(store.get_settings() or {})
    settings = settings.updated(work_duration=50)
    store.save_settings(settings.to_dict())

Changes apply to the next session only; an active session keeps the
duration it was created with.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path


# ── data location ───────────────────────────────────────────────────────

DEFAULT_HOME = Path.home() / ".local" / "share" / "ChunkPomo"


def app_data_dir() -> Path:
    """Directory holding the database (``$CHUNKPOMO_HOME`` wins)."""
    override = os.environ.get("CHUNKPOMO_HOME")
    return Path(override).expanduser() if override else DEFAULT_HOME


# ── defaults ────────────────────────────────────────────────────────────

DEFAULT_WORK_MINUTES = 25
DEFAULT_CHUNK_MINUTES = 120

_CAMEL_KEYS = {
    "work_duration": "workDuration",
    "short_break_duration": "shortBreakDuration",
    "long_break_duration": "longBreakDuration",
    "long_break_interval": "longBreakInterval",
}


@dataclass(frozen=True)
class PomodoroSettings:
    """Durations in minutes; interval counts completed work sessions."""

    work_duration: int = DEFAULT_WORK_MINUTES
    short_break_duration: int = 5
    long_break_duration: int = 15
    long_break_interval: int = 4

    def __post_init__(self) -> None:
        """Coerce every field to ``int``; each must be at least 1.

        Raises ``ValueError`` otherwise.
        """
        for f in fields(self):
            raw = getattr(self, f.name)
            if isinstance(raw, bool):
                raise ValueError(f"{f.name} must be a whole number, not {raw!r}")
            try:
                value = int(raw)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"{f.name} must be a whole number, not {raw!r}") from exc
            if value < 1:
                raise ValueError(f"{f.name} must be at least 1, not {value}")
            object.__setattr__(self, f.name, value)

    def updated(self, **changes) -> "PomodoroSettings":
        """Return a copy with *changes* applied (unknown keys ignored)."""
        valid = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in changes.items() if k in valid})

    def to_dict(self) -> dict:
        return {_CAMEL_KEYS[k]: v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: dict) -> "PomodoroSettings":
        """Build from a stored record, accepting camelCase or snake_case.

        Only keys that exist in the dataclass are used.  Raises
        ``ValueError`` for a non-object record or an invalid value.
        """
        if not isinstance(data, dict):
            raise ValueError(f"settings record must be an object, not {data!r}")
        reverse = {camel: snake for snake, camel in _CAMEL_KEYS.items()}
        valid_keys = {f.name for f in fields(cls)}
        filtered = {}
        for key, value in data.items():
            name = reverse.get(key, key)
            if name in valid_keys:
                filtered[name] = value
        return cls(**filtered)


DEFAULT_POMODORO_SETTINGS = PomodoroSettings()
