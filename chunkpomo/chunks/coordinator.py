"""Chunk coordinator: the application-facing core of ChunkPomo.

Owns a :class:`SessionManager` and connects it to the outside world:

* persistence through :class:`PomodoroStore` at every lifecycle edge,
* chunk bookkeeping (completed sessions, expected pomodoros, finalize),
* task completion when a work session carrying a task id completes,
* statistics, recomputed from the stored collections,
* desktop notifications and wake alarms.

Errors from session / chunk operations propagate to the caller.
Storage and notification failures that follow an already-committed
transition are logged and emitted on ``error`` instead; the in-memory
state is never rolled back for them.

Usage::

    coordinator = ChunkCoordinator(PomodoroStore())
    coordinator.initialize()
    coordinator.start_new_chunk(120)
    task = coordinator.add_task("Write report", estimated_pomodoros=3)
    coordinator.start_work_session(task.id)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal
from sqlalchemy.exc import SQLAlchemyError

from ..database.store import PomodoroStore, within_quota
from ..errors import (
    ChunkConflict, ChunkPomoError, CorruptState, PermissionDenied, StorageError,
)
from ..notifications import (
    NotificationManager,
    NotificationOptions,
    break_complete_notification,
    chunk_complete_notification,
    chunk_time_up_notification,
    work_session_complete_notification,
)
from ..restore import restore_session
from ..scheduling import AlarmScheduler
from ..settings import (
    DEFAULT_CHUNK_MINUTES,
    DEFAULT_POMODORO_SETTINGS,
    DEFAULT_WORK_MINUTES,
    PomodoroSettings,
)
from ..stats import Statistics, compute_statistics
from ..timer.clock import (
    Clock, datetime_to_ms, format_time, minutes_to_ms, ms_to_datetime, now_ms,
)
from ..timer.session import PomodoroSession, SessionManager, SessionType
from .models import Chunk, ChunkStatus, Priority, Task

logger = logging.getLogger(__name__)

POMODORO_ALARM = "pomodoroTimer"
CHUNK_ALARM = "chunkTimer"

# What a notification was about, so its buttons can be routed.
_SESSION_NOTICE = "session"
_CHUNK_NOTICE = "chunk"


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class ChunkCoordinator(QObject):
    """Signals
    -------
    session_started(session)
    session_paused(session)
    session_resumed(session)
    session_stopped(session)
    session_restored(session)
    session_completed(session)
    tick(session, remaining_ms: int, formatted: str)
    chunk_started(chunk)
    chunk_completed(chunk)
    chunk_time_elapsed(chunk)
        The chunk's wall-clock duration ran out before its target.
    task_completed(task)
    statistics_updated(stats: Statistics)
    error(exc: ChunkPomoError)
    """

    session_started = pyqtSignal(object)
    session_paused = pyqtSignal(object)
    session_resumed = pyqtSignal(object)
    session_stopped = pyqtSignal(object)
    session_restored = pyqtSignal(object)
    session_completed = pyqtSignal(object)
    tick = pyqtSignal(object, int, str)
    chunk_started = pyqtSignal(object)
    chunk_completed = pyqtSignal(object)
    chunk_time_elapsed = pyqtSignal(object)
    task_completed = pyqtSignal(object)
    statistics_updated = pyqtSignal(object)
    error = pyqtSignal(object)

    def __init__(
        self,
        store: PomodoroStore | None = None,
        notifier: NotificationManager | None = None,
        scheduler: AlarmScheduler | None = None,
        parent: QObject | None = None,
        *,
        settings: PomodoroSettings = DEFAULT_POMODORO_SETTINGS,
        clock: Clock = now_ms,
    ) -> None:
        super().__init__(parent)
        self._clock = clock
        self._base_settings = settings
        self._store = store if store is not None else PomodoroStore(self)
        self._notifier = notifier if notifier is not None else NotificationManager(self)
        self._scheduler = scheduler if scheduler is not None else AlarmScheduler(self)
        self._manager = SessionManager(settings, self, clock=clock)

        self._chunk: Chunk | None = None
        self._tasks: list[Task] = []
        self._notices: dict[str, str] = {}
        self._initialized = False

        m = self._manager
        m.session_started.connect(self._on_session_started)
        m.session_paused.connect(self._on_session_paused)
        m.session_resumed.connect(self._on_session_resumed)
        m.session_stopped.connect(self._on_session_stopped)
        m.session_restored.connect(self._on_session_restored)
        m.session_completed.connect(self._on_session_completed)
        m.cycle_completed.connect(self._on_cycle_completed)
        m.tick.connect(self._on_tick)

        self._notifier.clicked.connect(self._on_notification_clicked)
        self._notifier.button_clicked.connect(self._on_notification_button)
        self._notifier.closed.connect(self._on_notification_closed)
        self._scheduler.alarm_fired.connect(self._on_alarm)

    # ══════════════════════════════════════════════════════════════════
    #  LIFECYCLE
    # ══════════════════════════════════════════════════════════════════

    def initialize(self) -> None:
        """Load persisted state and restore an in-flight session."""
        self._notifier.request_permission()

        stored = self._store.get_settings()
        if stored is not None:
            parsed = self._parse([stored], PomodoroSettings.from_dict, "settings")
            self._manager.set_settings(parsed[0] if parsed else self._base_settings)

        self._manager.load_history(
            self._parse(self._store.get_sessions(), PomodoroSession.from_dict, "session")
        )
        chunk_record = self._store.get_current_chunk()
        chunks = self._parse(
            [chunk_record] if chunk_record else [], Chunk.from_dict, "chunk"
        )
        self._chunk = chunks[0] if chunks else None
        self._tasks = self._parse(self._store.get_tasks(), Task.from_dict, "task")

        if not self._manager.is_session_active():
            self._restore_current_session()
        self._arm_chunk_alarm()
        self._initialized = True

    def destroy(self) -> None:
        self._manager.destroy()
        self._scheduler.clear_all()
        self._notifier.clear_all()
        self._chunk = None
        self._tasks = []
        self._notices.clear()
        self._initialized = False

    @property
    def manager(self) -> SessionManager:
        return self._manager

    @property
    def store(self) -> PomodoroStore:
        return self._store

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ══════════════════════════════════════════════════════════════════
    #  SESSION CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def start_work_session(self, task_id: str | None = None) -> PomodoroSession:
        self._ensure_initialized()
        return self._manager.start_work_session(task_id)

    def start_break_session(self) -> PomodoroSession:
        self._ensure_initialized()
        return self._manager.start_break_session()

    def start_next_session(self) -> PomodoroSession:
        """Start whatever :meth:`next_session_type` says comes next."""
        self._ensure_initialized()
        return self._manager.start_session(self._manager.next_session_type())

    def pause_session(self) -> None:
        self._manager.pause_session()

    def resume_session(self) -> None:
        self._manager.resume_session()

    def stop_session(self) -> None:
        self._manager.stop_session()

    def skip_session(self) -> None:
        self._manager.skip_session()

    # ══════════════════════════════════════════════════════════════════
    #  CHUNKS & TASKS
    # ══════════════════════════════════════════════════════════════════

    def start_new_chunk(self, duration: int = DEFAULT_CHUNK_MINUTES) -> Chunk:
        """Create and activate a chunk of *duration* minutes.

        Raises :class:`ChunkConflict` while another chunk is current.
        """
        self._ensure_initialized()
        if self._chunk is not None:
            raise ChunkConflict(f"Chunk {self._chunk.id} is still active")
        if duration <= 0:
            raise ValueError("Chunk duration must be positive")

        chunk = Chunk(
            id=_new_id("chunk"),
            start_time=ms_to_datetime(self._clock()),
            duration=int(duration),
        )
        self._chunk = chunk
        self._persist(self._store.save_current_chunk, chunk.to_dict())
        self._arm_chunk_alarm()
        logger.info("Started chunk %s (%d min)", chunk.id, chunk.duration)
        self.chunk_started.emit(chunk.copy())
        return chunk.copy()

    def add_task(
        self,
        title: str,
        description: str = "",
        estimated_pomodoros: int = 1,
        priority: Priority | str = Priority.MEDIUM,
    ) -> Task:
        """Add a task to the task list and to the current chunk."""
        self._ensure_initialized()
        task = Task(
            id=_new_id("task"),
            title=title,
            description=description,
            estimated_pomodoros=int(estimated_pomodoros),
            priority=Priority(priority),
            chunk_id=self._chunk.id if self._chunk else "",
        )
        self._tasks.append(task)
        if self._chunk is not None:
            self._chunk.tasks.append(task)
            self._persist(self._store.save_current_chunk, self._chunk.to_dict())
        self._save_tasks()
        return replace(task)

    def expected_pomodoros_for_chunk(self) -> int:
        """``max(sum of task estimates, chunk minutes // 25)``.

        Read from the live task list on every call, so tasks added late
        in a chunk move the target.
        """
        if self._chunk is None:
            return 0
        by_time = self._chunk.duration // DEFAULT_WORK_MINUTES
        return max(self._chunk.estimated_pomodoros(), by_time)

    # ══════════════════════════════════════════════════════════════════
    #  GETTERS & SETTINGS
    # ══════════════════════════════════════════════════════════════════

    def current_session(self) -> PomodoroSession | None:
        return self._manager.current_session()

    def current_chunk(self) -> Chunk | None:
        return self._chunk.copy() if self._chunk else None

    def tasks(self) -> list[Task]:
        return [replace(t) for t in self._tasks]

    def settings(self) -> PomodoroSettings:
        return self._manager.settings

    def remaining_time(self) -> int:
        return self._manager.remaining_time()

    def formatted_remaining_time(self) -> str:
        return self._manager.formatted_remaining_time()

    def is_session_active(self) -> bool:
        return self._manager.is_session_active()

    def is_session_running(self) -> bool:
        return self._manager.is_session_running()

    def is_session_paused(self) -> bool:
        return self._manager.is_session_paused()

    def next_session_type(self) -> SessionType:
        return self._manager.next_session_type()

    def statistics(self) -> Statistics:
        return compute_statistics(
            self._store.get_sessions(),
            self._store.get_chunks(),
            self._store.get_tasks(),
            now=ms_to_datetime(self._clock()),
        )

    def update_settings(self, **changes) -> PomodoroSettings:
        """Change settings; the active session keeps its duration."""
        settings = self._manager.update_settings(**changes)
        self._persist(self._store.save_settings, settings.to_dict())
        return settings

    def export_data(self) -> str:
        return self._store.export_data()

    def import_data(self, json_data: str) -> None:
        """Import a document produced by :meth:`export_data` and reload."""
        self._store.import_data(json_data)
        self.initialize()

    # ══════════════════════════════════════════════════════════════════
    #  SESSION MANAGER EVENTS
    # ══════════════════════════════════════════════════════════════════

    def _on_session_started(self, session: PomodoroSession) -> None:
        self._save_current_session()
        self._arm_session_alarm()
        self.session_started.emit(session)

    def _on_session_paused(self, session: PomodoroSession) -> None:
        self._save_current_session()
        self._scheduler.clear(POMODORO_ALARM)
        self.session_paused.emit(session)

    def _on_session_resumed(self, session: PomodoroSession) -> None:
        self._save_current_session()
        self._arm_session_alarm()
        self.session_resumed.emit(session)

    def _on_session_stopped(self, session: PomodoroSession) -> None:
        self._scheduler.clear(POMODORO_ALARM)
        self._persist(self._store.clear_current_session)
        logger.info("Stopped %s session %s", session.type.value, session.id)
        self.session_stopped.emit(session)

    def _on_session_restored(self, session: PomodoroSession) -> None:
        self._save_current_session()
        if self._manager.is_session_running():
            self._arm_session_alarm()
        self.session_restored.emit(session)

    def _on_session_completed(self, session: PomodoroSession) -> None:
        self._scheduler.clear(POMODORO_ALARM)
        self._persist(self._record_completed_session, session)

        if self._chunk is not None:
            self._chunk.sessions.append(session.copy())
            self._persist(self._store.save_current_chunk, self._chunk.to_dict())

        if session.is_work:
            if session.task_id:
                self._complete_task(session.task_id)
            self._notify(work_session_complete_notification(), _SESSION_NOTICE)
        else:
            self._notify(break_complete_notification(), _SESSION_NOTICE)

        self.session_completed.emit(session)
        self._update_statistics()

    def _on_cycle_completed(self, total_work_sessions: int) -> None:
        if self._chunk is None:
            return
        done = self._chunk.completed_work_sessions()
        expected = self.expected_pomodoros_for_chunk()
        logger.debug(
            "Cycle %d: chunk %s at %d/%d pomodoros",
            total_work_sessions, self._chunk.id, done, expected,
        )
        if done >= expected:
            self._complete_current_chunk()

    def _on_tick(self, session: PomodoroSession, remaining: int) -> None:
        self.tick.emit(session, remaining, format_time(remaining))

    # ══════════════════════════════════════════════════════════════════
    #  COLLABORATOR EVENTS
    # ══════════════════════════════════════════════════════════════════

    def _on_notification_clicked(self, notification_id: str) -> None:
        logger.debug("Notification clicked: %s", notification_id)

    def _on_notification_button(self, notification_id: str, index: int) -> None:
        kind = self._notices.get(notification_id)
        self._notifier.clear(notification_id)
        if index != 0:
            return
        try:
            if kind == _SESSION_NOTICE:
                self.start_next_session()
            elif kind == _CHUNK_NOTICE:
                self.start_new_chunk()
        except ChunkPomoError as exc:
            logger.warning("Notification action failed: %s", exc)
            self.error.emit(exc)

    def _on_notification_closed(self, notification_id: str, by_user: bool) -> None:
        self._notices.pop(notification_id, None)

    def _on_alarm(self, name: str) -> None:
        if name == POMODORO_ALARM:
            self._manager.check_timer()
        elif name == CHUNK_ALARM and self._chunk is not None:
            logger.info("Chunk %s ran out of time", self._chunk.id)
            self._notify(chunk_time_up_notification(), None)
            self.chunk_time_elapsed.emit(self._chunk.copy())

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL
    # ══════════════════════════════════════════════════════════════════

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    def _restore_current_session(self) -> None:
        try:
            record = self._store.get_current_session()
            if record is None:
                return
            session = restore_session(self._manager, record, self._clock())
        except CorruptState as exc:
            logger.warning("Skipping session restoration: %s", exc)
            self.error.emit(exc)
            self._persist(self._store.clear_current_session)
            return
        except SQLAlchemyError as exc:
            logger.exception("Could not read the in-flight session")
            self.error.emit(StorageError(str(exc)))
            return
        if session is None:
            self._persist(self._store.clear_current_session)

    def _complete_current_chunk(self) -> None:
        chunk = self._chunk
        if chunk is None:
            return
        chunk.status = ChunkStatus.COMPLETED
        chunk.end_time = ms_to_datetime(self._clock())
        self._chunk = None
        self._scheduler.clear(CHUNK_ALARM)

        self._persist(self._record_completed_chunk, chunk)
        self._notify(
            chunk_complete_notification(chunk.completed_work_sessions()),
            _CHUNK_NOTICE,
        )
        logger.info(
            "Completed chunk %s with %d pomodoros",
            chunk.id, chunk.completed_work_sessions(),
        )
        self.chunk_completed.emit(chunk.copy())
        self._update_statistics()

    def _complete_task(self, task_id: str) -> None:
        task = next((t for t in self._tasks if t.id == task_id), None)
        if task is None:
            return
        task.completed = True
        if self._chunk is not None:
            for chunk_task in self._chunk.tasks:
                if chunk_task.id == task_id:
                    chunk_task.completed = True
            self._persist(self._store.save_current_chunk, self._chunk.to_dict())
        self._save_tasks()
        self.task_completed.emit(replace(task))

    def _update_statistics(self) -> None:
        try:
            stats = self.statistics()
            self._store.save_statistics(stats.to_dict())
            usage = self._store.storage_usage()
        except SQLAlchemyError as exc:
            logger.exception("Could not update statistics")
            self.error.emit(StorageError(str(exc)))
            return
        if not within_quota(usage):
            logger.warning("Storage is nearly full: %d bytes used", usage)
        self.statistics_updated.emit(stats)

    # ── persistence helpers ─────────────────────────────────────────────

    def _persist(self, operation: Callable, *args) -> bool:
        """Run a store write; report failures on ``error``."""
        try:
            operation(*args)
        except SQLAlchemyError as exc:
            logger.exception("Storage write failed")
            self.error.emit(StorageError(str(exc)))
            return False
        return True

    def _record_completed_session(self, session: PomodoroSession) -> None:
        sessions = self._store.get_sessions()
        sessions.append(session.to_dict())
        self._store.save_sessions(sessions)
        self._store.clear_current_session()

    def _record_completed_chunk(self, chunk: Chunk) -> None:
        chunks = self._store.get_chunks()
        chunks.append(chunk.to_dict())
        self._store.save_chunks(chunks)
        self._store.clear_current_chunk()

    def _save_tasks(self) -> None:
        self._persist(self._store.save_tasks, [t.to_dict() for t in self._tasks])

    def _save_current_session(self) -> None:
        record = self._current_session_record()
        if record is not None:
            self._persist(self._store.save_current_session, record)

    def _current_session_record(self) -> dict | None:
        session = self._manager.current_session()
        snapshot = self._manager.timer_snapshot()
        if session is None or snapshot is None:
            return None
        remaining = snapshot.remaining
        if (
            snapshot.paused
            and snapshot.start_time is not None
            and snapshot.pause_time is not None
        ):
            elapsed = snapshot.pause_time - snapshot.start_time
            remaining = max(0, snapshot.duration - elapsed)
        record = session.to_dict()
        record.update(
            isRunning=snapshot.running,
            isPaused=snapshot.paused,
            remaining=remaining,
            timerStartTime=snapshot.start_time,
            pauseTime=snapshot.pause_time,
        )
        return record

    def _parse(self, records: list, factory: Callable, label: str) -> list:
        parsed = []
        for record in records:
            try:
                parsed.append(factory(record))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable %s record: %s", label, exc)
        return parsed

    # ── notifications & alarms ──────────────────────────────────────────

    def _notify(self, options: NotificationOptions, kind: str | None) -> None:
        try:
            notification_id = self._notifier.show_notification(options)
        except PermissionDenied as exc:
            logger.warning("Notification not shown: %s", exc)
            self.error.emit(exc)
            return
        if kind is not None:
            self._notices[notification_id] = kind

    def _arm_session_alarm(self) -> None:
        self._scheduler.create(POMODORO_ALARM, self._manager.remaining_time())

    def _arm_chunk_alarm(self) -> None:
        if self._chunk is None or not self._chunk.is_active:
            self._scheduler.clear(CHUNK_ALARM)
            return
        ends_at = datetime_to_ms(self._chunk.start_time) + minutes_to_ms(self._chunk.duration)
        delay = ends_at - self._clock()
        if delay > 0:
            self._scheduler.create(CHUNK_ALARM, delay)
        else:
            self._scheduler.clear(CHUNK_ALARM)
