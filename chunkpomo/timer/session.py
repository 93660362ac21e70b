"""Session manager: work / break semantics on top of :class:`Timer`.

States
------
IDLE      No current session.  Only state from which a session starts.
RUNNING   Current session's timer is counting down.
PAUSED    Current session's timer is frozen.

Transitions
-----------
IDLE → RUNNING            (start_work_session / start_break_session)
RUNNING ⇄ PAUSED          (pause_session / resume_session)
RUNNING | PAUSED → IDLE   (timer completion, skip_session, stop_session)

Completion (natural or skipped) stamps the session, appends a copy to
history, counts work sessions, emits ``session_completed`` and, for
work sessions only, ``cycle_completed(total_work_sessions)``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, date
from enum import Enum

from PyQt6.QtCore import QObject, pyqtSignal

from ..errors import NoActiveSession, SessionConflict
from ..settings import DEFAULT_POMODORO_SETTINGS, PomodoroSettings
from .clock import Clock, format_time, minutes_to_ms, ms_to_datetime, now_ms
from .engine import Timer, TimerSnapshot

logger = logging.getLogger(__name__)


# ── enums ─────────────────────────────────────────────────────────────────


class SessionType(Enum):
    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"


_DISPLAY_NAMES: dict[SessionType, str] = {
    SessionType.WORK: "Work",
    SessionType.SHORT_BREAK: "Short break",
    SessionType.LONG_BREAK: "Long break",
}

_SETTINGS_FIELD: dict[SessionType, str] = {
    SessionType.WORK: "work_duration",
    SessionType.SHORT_BREAK: "short_break_duration",
    SessionType.LONG_BREAK: "long_break_duration",
}


def session_type_display_name(session_type: SessionType) -> str:
    return _DISPLAY_NAMES[session_type]


def session_duration_ms(settings: PomodoroSettings, session_type: SessionType) -> int:
    return minutes_to_ms(getattr(settings, _SETTINGS_FIELD[session_type]))


# ── session record ────────────────────────────────────────────────────────


@dataclass
class PomodoroSession:
    """One timed work or break interval.

    Only ``completed`` and ``end_time`` change, once, at completion.
    """

    id: str
    type: SessionType
    duration: int  # milliseconds
    start_time: datetime
    end_time: datetime | None = None
    completed: bool = False
    task_id: str | None = None

    @property
    def is_work(self) -> bool:
        return self.type == SessionType.WORK

    def copy(self) -> "PomodoroSession":
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "duration": self.duration,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "completed": self.completed,
            "taskId": self.task_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PomodoroSession":
        """Inverse of :meth:`to_dict`.  Raises KeyError / ValueError."""
        end = data.get("endTime")
        return cls(
            id=str(data["id"]),
            type=SessionType(data["type"]),
            duration=int(data["duration"]),
            start_time=datetime.fromisoformat(data["startTime"]),
            end_time=datetime.fromisoformat(end) if end else None,
            completed=bool(data.get("completed", False)),
            task_id=data.get("taskId") or None,
        )


# ── manager ───────────────────────────────────────────────────────────────


class SessionManager(QObject):
    """Owns the current session and its timer.

    Signals
    -------
    session_started(session)
    session_paused(session)
    session_resumed(session)
    session_stopped(session)
    session_restored(session)
    session_completed(session)
        Carries the completed snapshot (``completed`` and ``end_time``
        set).  Fired for natural expiry and for skips.
    tick(session, remaining_ms)
    cycle_completed(total_work_sessions: int)
        Fired after ``session_completed`` for work sessions only.

    Every session payload is a copy; listeners can't alias live state.
    """

    session_started = pyqtSignal(object)
    session_paused = pyqtSignal(object)
    session_resumed = pyqtSignal(object)
    session_stopped = pyqtSignal(object)
    session_restored = pyqtSignal(object)
    session_completed = pyqtSignal(object)
    tick = pyqtSignal(object, int)
    cycle_completed = pyqtSignal(int)

    def __init__(
        self,
        settings: PomodoroSettings = DEFAULT_POMODORO_SETTINGS,
        parent: QObject | None = None,
        *,
        clock: Clock = now_ms,
    ) -> None:
        super().__init__(parent)
        self._settings = settings
        self._clock = clock

        self._current: PomodoroSession | None = None
        self._timer: Timer | None = None
        self._history: list[PomodoroSession] = []
        self._work_sessions_completed: int = 0

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def settings(self) -> PomodoroSettings:
        return self._settings

    @property
    def work_sessions_completed(self) -> int:
        return self._work_sessions_completed

    def current_session(self) -> PomodoroSession | None:
        return self._current.copy() if self._current else None

    def session_history(self) -> list[PomodoroSession]:
        return [s.copy() for s in self._history]

    def timer_snapshot(self) -> TimerSnapshot | None:
        return self._timer.snapshot() if self._timer else None

    def is_session_active(self) -> bool:
        return self._current is not None

    def is_session_running(self) -> bool:
        return self._timer.is_running() if self._timer else False

    def is_session_paused(self) -> bool:
        return self._timer.is_paused() if self._timer else False

    def remaining_time(self) -> int:
        return self._timer.remaining if self._timer else 0

    def formatted_remaining_time(self) -> str:
        return format_time(self.remaining_time())

    def should_take_long_break(self) -> bool:
        return self._long_break_due(self._work_sessions_completed)

    def _long_break_due(self, count: int) -> bool:
        return count > 0 and count % self._settings.long_break_interval == 0

    def next_session_type(self) -> SessionType:
        """Type of the session that should follow the current one.

        When idle, the last completed session decides: a break after
        work, work after a break or with no history.  A running work
        session is counted as if it had already completed.
        """
        if self._current is not None:
            if not self._current.is_work:
                return SessionType.WORK
            count = self._work_sessions_completed + 1
        elif self._history and self._history[-1].is_work:
            count = self._work_sessions_completed
        else:
            return SessionType.WORK
        if self._long_break_due(count):
            return SessionType.LONG_BREAK
        return SessionType.SHORT_BREAK

    def todays_sessions(self, today: date | None = None) -> list[PomodoroSession]:
        today = today or ms_to_datetime(self._clock()).date()
        return [s.copy() for s in self._history if s.start_time.date() == today]

    def work_sessions_completed_today(self, today: date | None = None) -> int:
        return sum(
            1 for s in self.todays_sessions(today) if s.is_work and s.completed
        )

    def total_work_sessions_completed(self) -> int:
        return sum(1 for s in self._history if s.is_work and s.completed)

    def update_settings(self, **changes) -> PomodoroSettings:
        """Apply to the next session only."""
        self._settings = self._settings.updated(**changes)
        return self._settings

    def set_settings(self, settings: PomodoroSettings) -> None:
        self._settings = settings

    def load_history(self, sessions: list[PomodoroSession]) -> None:
        """Seed history (and the work counter) from persisted sessions."""
        self._history = [s.copy() for s in sessions]
        self._work_sessions_completed = self.total_work_sessions_completed()

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def start_work_session(self, task_id: str | None = None) -> PomodoroSession:
        self._ensure_idle()
        return self._begin(self._create_session(SessionType.WORK, task_id))

    def start_break_session(self) -> PomodoroSession:
        self._ensure_idle()
        if self.should_take_long_break():
            break_type = SessionType.LONG_BREAK
        else:
            break_type = SessionType.SHORT_BREAK
        return self._begin(self._create_session(break_type))

    def start_session(
        self, session_type: SessionType, task_id: str | None = None
    ) -> PomodoroSession:
        """Start *session_type*; breaks still pick short vs. long."""
        if session_type == SessionType.WORK:
            return self.start_work_session(task_id)
        return self.start_break_session()

    def pause_session(self) -> None:
        if self._timer is None or self._current is None or not self._timer.is_running():
            raise NoActiveSession("No running session to pause")
        self._timer.pause()

    def resume_session(self) -> None:
        if self._timer is None or self._current is None or not self._timer.is_paused():
            raise NoActiveSession("No paused session to resume")
        self._timer.resume()

    def stop_session(self) -> None:
        """Abandon the current session.  Nothing is added to history."""
        if self._timer is None or self._current is None:
            raise NoActiveSession("No active session to stop")
        timer = self._timer
        timer.stop()
        self._clear(timer)

    def skip_session(self) -> None:
        """Complete the current session now, exactly like expiry."""
        if self._current is None:
            raise NoActiveSession("No active session to skip")
        self._complete_current()

    def check_timer(self) -> None:
        """Recompute the running timer immediately (wake alarms)."""
        if self._timer is not None:
            self._timer.check_now()

    def restore_session(
        self,
        session: PomodoroSession,
        remaining_ms: int,
        *,
        paused: bool = False,
    ) -> PomodoroSession:
        """Re-arm *session* with *remaining_ms* left.

        Used after a process restart.  Does not emit ``session_started``.
        """
        self._ensure_idle()
        self._current = session.copy()
        self._timer = Timer.restore_from(
            TimerSnapshot(
                duration=session.duration,
                remaining=remaining_ms,
                running=True,
                paused=paused,
            ),
            self,
            clock=self._clock,
        )
        self._wire(self._timer)
        logger.info(
            "Restored %s session %s with %ss left%s",
            session.type.value, session.id, remaining_ms // 1000,
            " (paused)" if paused else "",
        )
        self.session_restored.emit(self._current.copy())
        return self._current.copy()

    def reset(self) -> None:
        """Drop the current session and the work counter; keep history."""
        if self._timer is not None:
            self._timer.destroy()
        self._timer = None
        self._current = None
        self._work_sessions_completed = 0

    def destroy(self) -> None:
        self.reset()
        self._history = []

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL
    # ══════════════════════════════════════════════════════════════════

    def _ensure_idle(self) -> None:
        if self._current is not None:
            raise SessionConflict(
                "Cannot start a new session while another is active"
            )

    def _create_session(
        self, session_type: SessionType, task_id: str | None = None
    ) -> PomodoroSession:
        return PomodoroSession(
            id=f"pomodoro_{uuid.uuid4().hex[:12]}",
            type=session_type,
            duration=session_duration_ms(self._settings, session_type),
            start_time=ms_to_datetime(self._clock()),
            task_id=task_id or None,
        )

    def _begin(self, session: PomodoroSession) -> PomodoroSession:
        self._current = session
        self._timer = Timer(session.duration, self, clock=self._clock)
        self._wire(self._timer)
        logger.info(
            "Starting %s session %s (%d min)",
            session.type.value, session.id, session.duration // 60_000,
        )
        self._timer.start()
        return session.copy()

    def _wire(self, timer: Timer) -> None:
        timer.started.connect(lambda: self._emit_current(self.session_started))
        timer.paused.connect(lambda: self._emit_current(self.session_paused))
        timer.resumed.connect(lambda: self._emit_current(self.session_resumed))
        timer.stopped.connect(lambda: self._emit_current(self.session_stopped))
        timer.tick.connect(self._on_timer_tick)
        timer.completed.connect(self._complete_current)

    def _emit_current(self, signal) -> None:
        if self._current is not None:
            signal.emit(self._current.copy())

    def _on_timer_tick(self, remaining: int) -> None:
        if self._current is not None:
            self.tick.emit(self._current.copy(), remaining)

    def _complete_current(self) -> None:
        if self._current is None:
            return
        session = self._current
        session.completed = True
        session.end_time = ms_to_datetime(self._clock())
        self._history.append(session.copy())

        if session.is_work:
            self._work_sessions_completed += 1

        timer = self._timer
        self._clear(timer)
        logger.info("Completed %s session %s", session.type.value, session.id)

        self.session_completed.emit(session.copy())
        if session.is_work:
            self.cycle_completed.emit(self._work_sessions_completed)

    def _clear(self, timer: Timer | None) -> None:
        self._current = None
        self._timer = None
        if timer is not None:
            timer.destroy()
