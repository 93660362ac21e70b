"""Rebuild an in-flight session after a process restart.

The persisted record is the one written by the coordinator on every
start / pause / resume::

    {
        "id": ..., "type": "work", "duration": 1500000,
        "startTime": "2026-10-19T09:00:00", "taskId": null,
        "isRunning": true, "isPaused": false,
        "remaining": 900000, "timerStartTime": 1792400000000,
        "pauseTime": null,
    }

Running sessions
    ``remaining = max(0, duration - (now - start))``, where *start* is
    ``timerStartTime`` (already shifted past any pauses) or, for older
    records, ``startTime``.
Paused sessions
    ``remaining`` as stored at pause time.  Wall-clock time spent
    paused (including while the process was down) never counts.

A record that is neither running nor paused is left alone.
A session whose remaining time has run out is not restored and its
completion side effects are not replayed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import CorruptState
from .timer.clock import ms_to_datetime, parse_timestamp
from .timer.session import PomodoroSession, SessionManager, SessionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RestorePlan:
    session: PomodoroSession
    remaining: int
    paused: bool
    running: bool = True

    @property
    def expired(self) -> bool:
        return self.remaining <= 0


def plan_restore(record: object, now: int) -> RestorePlan:
    """Work out what restoring *record* at *now* (epoch ms) means.

    Raises :class:`CorruptState` when required fields are missing or
    malformed.
    """
    if not isinstance(record, dict):
        raise CorruptState("Session record is not an object")
    session_id = record.get("id")
    type_value = record.get("type")
    if not session_id or not type_value:
        raise CorruptState("Session record has no id or type")

    try:
        session_type = SessionType(type_value)
        duration = int(record["duration"])
        started = parse_timestamp(record["startTime"])
    except (KeyError, TypeError, ValueError) as exc:
        raise CorruptState(f"Session record {session_id} is malformed: {exc}") from exc

    paused = bool(record.get("isPaused", False))
    running = paused or bool(record.get("isRunning", True))
    if paused and record.get("remaining") is not None:
        try:
            remaining = int(record["remaining"])
        except (TypeError, ValueError) as exc:
            raise CorruptState(f"Session record {session_id} is malformed: {exc}") from exc
        remaining = min(duration, max(0, remaining))
    else:
        anchor = started
        if record.get("timerStartTime") is not None:
            try:
                anchor = parse_timestamp(record["timerStartTime"])
            except ValueError:
                logger.warning("Ignoring bad timerStartTime on %s", session_id)
        elapsed = now - anchor
        remaining = max(0, duration - elapsed)
        paused = False

    session = PomodoroSession(
        id=str(session_id),
        type=session_type,
        duration=duration,
        start_time=ms_to_datetime(started),
        task_id=record.get("taskId") or None,
    )
    return RestorePlan(
        session=session, remaining=remaining, paused=paused, running=running,
    )


def restore_session(
    manager: SessionManager, record: object, now: int
) -> PomodoroSession | None:
    """Restore *record* into *manager*; return the session or ``None``.

    ``None`` means the session expired while the process was down, or
    the record was not running, and was deliberately left out.
    """
    plan = plan_restore(record, now)
    if not plan.running:
        logger.info("Session %s was not running; not restoring", plan.session.id)
        return None
    if plan.expired:
        logger.info(
            "Session %s expired during restoration; not restoring",
            plan.session.id,
        )
        return None
    return manager.restore_session(
        plan.session, plan.remaining, paused=plan.paused
    )
