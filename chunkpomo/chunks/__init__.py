"""Chunk package."""

from .coordinator import ChunkCoordinator, CHUNK_ALARM, POMODORO_ALARM
from .models import Chunk, ChunkStatus, Priority, Task

__all__ = [
    "ChunkCoordinator",
    "CHUNK_ALARM",
    "POMODORO_ALARM",
    "Chunk",
    "ChunkStatus",
    "Priority",
    "Task",
]
