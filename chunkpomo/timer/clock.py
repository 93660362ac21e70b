"""Wall-clock helpers and time formatting.

All timer arithmetic is done in integer milliseconds since the epoch.
Components take a ``clock`` callable (defaulting to :func:`now_ms`) so
tests can substitute a controllable clock.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def minutes_to_ms(minutes: float) -> int:
    return int(minutes * 60 * 1000)


def seconds_to_ms(seconds: float) -> int:
    return int(seconds * 1000)


def ms_to_minutes(milliseconds: int) -> int:
    return milliseconds // (60 * 1000)


def ms_to_seconds(milliseconds: int) -> int:
    return milliseconds // 1000


def ms_to_datetime(milliseconds: int) -> datetime:
    return datetime.fromtimestamp(milliseconds / 1000)


def datetime_to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def parse_timestamp(value: object) -> int:
    """Accept epoch ms or an ISO-8601 string; return epoch ms.

    Raises ``ValueError`` for anything else.
    """
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value:
        return datetime_to_ms(datetime.fromisoformat(value))
    raise ValueError(f"not a timestamp: {value!r}")


def format_time(milliseconds: int) -> str:
    """Format a duration as zero-padded ``MM:SS``.

    Counts whole elapsed seconds, so every input below 100 minutes
    renders with two minute digits.  Negative input renders as
    ``00:00``.
    """
    total_seconds = max(0, int(milliseconds)) // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"
