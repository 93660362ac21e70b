"""Database package."""

from .db import configure_engine, get_session, init_db
from .models import KeyValue
from .store import PomodoroStore, StorageKeys, STORAGE_KEYS

__all__ = [
    "configure_engine",
    "get_session",
    "init_db",
    "KeyValue",
    "PomodoroStore",
    "StorageKeys",
    "STORAGE_KEYS",
]
