"""Key/value persistence for ChunkPomo.

Every record is a JSON document stored under one of the known keys.
Each ``get`` / ``set`` / ``remove`` runs in its own transaction, so a
single key is always read or written atomically.

Export / import
---------------
``export_data`` writes the recognized keys, in :data:`STORAGE_KEYS`
order, as indented JSON.  ``import_data`` writes back every recognized
key it finds and silently ignores the rest.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from PyQt6.QtCore import QObject, pyqtSignal

from ..errors import InvalidFormat
from .db import get_session
from .models import KeyValue

logger = logging.getLogger(__name__)


class StorageKeys:
    SETTINGS = "pomodoro_settings"
    SESSIONS = "pomodoro_sessions"
    CURRENT_SESSION = "pomodoro_current_session"
    CHUNKS = "pomodoro_chunks"
    CURRENT_CHUNK = "pomodoro_current_chunk"
    TASKS = "pomodoro_tasks"
    STATISTICS = "pomodoro_statistics"


STORAGE_KEYS: tuple[str, ...] = (
    StorageKeys.SETTINGS,
    StorageKeys.SESSIONS,
    StorageKeys.CURRENT_SESSION,
    StorageKeys.CHUNKS,
    StorageKeys.CURRENT_CHUNK,
    StorageKeys.TASKS,
    StorageKeys.STATISTICS,
)

STORAGE_QUOTA_BYTES = 10 * 1024 * 1024


def within_quota(bytes_used: int, max_bytes: int = STORAGE_QUOTA_BYTES) -> bool:
    """True while usage stays under 90% of *max_bytes*."""
    return bytes_used < max_bytes * 0.9


class PomodoroStore(QObject):
    """SQLAlchemy-backed key/value store.

    Signals
    -------
    changed(changes: dict)
        Emitted after a committed write.  Maps each touched key to its
        new value (``None`` for removed keys).
    """

    changed = pyqtSignal(object)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)

    # ══════════════════════════════════════════════════════════════════
    #  RAW KEY/VALUE
    # ══════════════════════════════════════════════════════════════════

    def get(self, key: str, default: Any = None) -> Any:
        with get_session() as db:
            entry = db.get(KeyValue, key)
            return entry.value if entry is not None else default

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, data: dict[str, Any]) -> None:
        """Write several keys in one transaction.  ``None`` removes."""
        if not data:
            return
        with get_session() as db:
            for key, value in data.items():
                entry = db.get(KeyValue, key)
                if value is None:
                    if entry is not None:
                        db.delete(entry)
                elif entry is None:
                    db.add(KeyValue(key=key, value=value))
                else:
                    entry.value = value
        self.changed.emit(dict(data))

    def remove(self, *keys: str) -> None:
        self.set_many({key: None for key in keys})

    def get_all(self) -> dict[str, Any]:
        with get_session() as db:
            rows = db.query(KeyValue).order_by(KeyValue.key).all()
            return {row.key: row.value for row in rows}

    def clear(self) -> None:
        keys = list(self.get_all())
        self.remove(*keys)

    # ══════════════════════════════════════════════════════════════════
    #  TYPED ACCESSORS
    # ══════════════════════════════════════════════════════════════════

    def save_settings(self, settings: dict) -> None:
        self.set(StorageKeys.SETTINGS, settings)

    def get_settings(self) -> dict | None:
        return self.get(StorageKeys.SETTINGS)

    def save_sessions(self, sessions: list[dict]) -> None:
        self.set(StorageKeys.SESSIONS, sessions)

    def get_sessions(self) -> list[dict]:
        return self.get(StorageKeys.SESSIONS) or []

    def save_current_session(self, session: dict) -> None:
        self.set(StorageKeys.CURRENT_SESSION, session)

    def get_current_session(self) -> dict | None:
        return self.get(StorageKeys.CURRENT_SESSION)

    def clear_current_session(self) -> None:
        self.remove(StorageKeys.CURRENT_SESSION)

    def save_chunks(self, chunks: list[dict]) -> None:
        self.set(StorageKeys.CHUNKS, chunks)

    def get_chunks(self) -> list[dict]:
        return self.get(StorageKeys.CHUNKS) or []

    def save_current_chunk(self, chunk: dict) -> None:
        self.set(StorageKeys.CURRENT_CHUNK, chunk)

    def get_current_chunk(self) -> dict | None:
        return self.get(StorageKeys.CURRENT_CHUNK)

    def clear_current_chunk(self) -> None:
        self.remove(StorageKeys.CURRENT_CHUNK)

    def save_tasks(self, tasks: list[dict]) -> None:
        self.set(StorageKeys.TASKS, tasks)

    def get_tasks(self) -> list[dict]:
        return self.get(StorageKeys.TASKS) or []

    def save_statistics(self, statistics: dict) -> None:
        self.set(StorageKeys.STATISTICS, statistics)

    def get_statistics(self) -> dict | None:
        return self.get(StorageKeys.STATISTICS)

    # ══════════════════════════════════════════════════════════════════
    #  EXPORT / IMPORT
    # ══════════════════════════════════════════════════════════════════

    def export_data(self) -> str:
        stored = self.get_all()
        data = {key: stored[key] for key in STORAGE_KEYS if key in stored}
        return json.dumps(data, indent=2, ensure_ascii=False)

    def import_data(self, json_data: str) -> list[str]:
        """Write every recognized key of *json_data*; return those keys.

        Raises :class:`InvalidFormat` if the text is not a JSON object.
        """
        try:
            data = json.loads(json_data)
        except (TypeError, ValueError) as exc:
            raise InvalidFormat("Import data is not valid JSON") from exc
        if not isinstance(data, dict):
            raise InvalidFormat("Import data must be a JSON object")

        recognized = {k: v for k, v in data.items() if k in STORAGE_KEYS}
        ignored = sorted(set(data) - set(recognized))
        if ignored:
            logger.debug("Ignoring unknown import keys: %s", ", ".join(ignored))
        self.set_many(recognized)
        return list(recognized)

    def clear_all_data(self) -> None:
        self.remove(*STORAGE_KEYS)

    def storage_usage(self) -> int:
        """Bytes used by every stored key and its compact JSON value."""
        return sum(
            len(key.encode("utf-8"))
            + len(json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
            for key, value in self.get_all().items()
        )
