"""Timer package."""

from .clock import format_time, minutes_to_ms, now_ms
from .engine import Timer, TimerSnapshot, TICK_INTERVAL_MS
from .session import (
    PomodoroSession,
    SessionManager,
    SessionType,
    session_type_display_name,
)

__all__ = [
    "format_time",
    "minutes_to_ms",
    "now_ms",
    "Timer",
    "TimerSnapshot",
    "TICK_INTERVAL_MS",
    "PomodoroSession",
    "SessionManager",
    "SessionType",
    "session_type_display_name",
]
