"""Countdown primitive for ChunkPomo.

States
------
fresh      Created, not started.  ``remaining == duration``.
running    Ticking once a second.
paused     Frozen; ``remaining`` keeps the value of the last tick.
stopped    Reset to full duration.  Can be started again.
completed  Reached zero.  ``completed`` has fired exactly once.

Transitions
-----------
fresh | stopped → running         (start)
running → paused                  (pause)
paused → running                  (resume)
any → stopped                     (stop)
running → completed               (remaining reaches 0 on a tick)

Elapsed time is always derived from the wall clock, never from the
number of ticks, so a late or skipped tick can't make the countdown
drift.  Resuming shifts ``start_time`` forward by the pause length so
the pause is excluded from elapsed time.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, asdict

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .clock import Clock, format_time, now_ms

logger = logging.getLogger(__name__)

TICK_INTERVAL_MS = 1000


@dataclass(frozen=True)
class TimerSnapshot:
    """The persisted internals of a :class:`Timer`."""

    duration: int
    remaining: int
    running: bool = False
    paused: bool = False
    start_time: int | None = None
    pause_time: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class Timer(QObject):
    """Wall-clock countdown with Qt signals.

    Signals
    -------
    started()
    tick(remaining_ms: int)
        Emitted on every tick while running and not paused.
    paused()
    resumed()
    stopped()
    completed()
        Emitted once when remaining reaches zero.
    """

    started = pyqtSignal()
    tick = pyqtSignal(int)
    paused = pyqtSignal()
    resumed = pyqtSignal()
    stopped = pyqtSignal()
    completed = pyqtSignal()

    def __init__(
        self,
        duration_ms: int,
        parent: QObject | None = None,
        *,
        clock: Clock = now_ms,
    ) -> None:
        super().__init__(parent)
        self._id = f"timer_{uuid.uuid4().hex[:12]}"
        self._clock = clock

        # ── countdown state ───────────────────────────────────────────
        self._duration: int = max(0, int(duration_ms))
        self._remaining: int = self._duration
        self._running: bool = False
        self._paused: bool = False
        self._start_time: int | None = None
        self._pause_time: int | None = None
        self._completion_fired: bool = False

        # ── Qt timer ──────────────────────────────────────────────────
        self._qt_timer = QTimer(self)
        self._qt_timer.setInterval(TICK_INTERVAL_MS)
        self._qt_timer.timeout.connect(self._on_tick)

    @classmethod
    def restore_from(
        cls,
        snapshot: TimerSnapshot,
        parent: QObject | None = None,
        *,
        clock: Clock = now_ms,
    ) -> "Timer":
        """Build a timer that continues from *snapshot*.

        ``start_time`` is recomputed from the current time so that the
        next tick yields ``snapshot.remaining``.  A paused snapshot stays
        paused; resuming it later continues from the stored remaining.
        A snapshot that was not running restores as a fresh timer.
        """
        timer = cls(snapshot.duration, parent, clock=clock)
        if not snapshot.running:
            return timer

        now = clock()
        remaining = min(max(0, int(snapshot.remaining)), timer._duration)
        timer._remaining = remaining
        timer._running = True
        timer._start_time = now - (timer._duration - remaining)
        if snapshot.paused:
            timer._paused = True
            timer._pause_time = now
        else:
            timer._qt_timer.start()
        return timer

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC PROPERTIES
    # ══════════════════════════════════════════════════════════════════

    @property
    def timer_id(self) -> str:
        return self._id

    @property
    def duration(self) -> int:
        return self._duration

    @property
    def remaining(self) -> int:
        """Milliseconds left, as of the last tick."""
        return self._remaining

    @property
    def start_time(self) -> int | None:
        return self._start_time

    @property
    def pause_time(self) -> int | None:
        return self._pause_time

    def is_running(self) -> bool:
        """True while counting down (started and not paused)."""
        return self._running and not self._paused

    def is_paused(self) -> bool:
        return self._paused

    def is_active(self) -> bool:
        """True from ``start()`` until stop or completion."""
        return self._running

    def formatted_time(self) -> str:
        return format_time(self._remaining)

    def remaining_minutes(self) -> int:
        return -(-self._remaining // 60_000)

    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            duration=self._duration,
            remaining=self._remaining,
            running=self._running,
            paused=self._paused,
            start_time=self._start_time,
            pause_time=self._pause_time,
        )

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Begin counting down.  No-op if already running."""
        if self._running:
            return
        self._running = True
        self._paused = False
        self._completion_fired = False
        self._start_time = self._clock()
        self._pause_time = None
        self._qt_timer.start()
        self.started.emit()

    def pause(self) -> None:
        """Freeze the countdown.  ``remaining`` is not recomputed."""
        if not self._running or self._paused:
            return
        self._paused = True
        self._pause_time = self._clock()
        self._qt_timer.stop()
        self.paused.emit()

    def resume(self) -> None:
        if not self._running or not self._paused:
            return
        now = self._clock()
        pause_time = self._pause_time if self._pause_time is not None else now
        self._start_time = (self._start_time or now) + (now - pause_time)
        self._paused = False
        self._pause_time = None
        self._qt_timer.start()
        self.resumed.emit()

    def stop(self) -> None:
        """Reset to the full duration.  Always emits ``stopped``."""
        self._qt_timer.stop()
        self._running = False
        self._paused = False
        self._remaining = self._duration
        self._start_time = None
        self._pause_time = None
        self.stopped.emit()

    def reset(self, new_duration: int | None = None) -> None:
        self.stop()
        if new_duration is not None:
            self._duration = max(0, int(new_duration))
        self._remaining = self._duration
        self._completion_fired = False

    def check_now(self) -> None:
        """Recompute remaining immediately instead of waiting a tick."""
        self._on_tick()

    def destroy(self) -> None:
        """Stop ticking, detach every listener and schedule deletion.

        The Qt object is freed on the next pass of the event loop (or
        the next ``sendPostedEvents`` for ``DeferredDelete``), so the
        timer must not be used afterwards.
        """
        self._qt_timer.stop()
        self._running = False
        self._paused = False
        for signal in (
            self.started, self.tick, self.paused,
            self.resumed, self.stopped, self.completed,
        ):
            try:
                signal.disconnect()
            except TypeError:
                pass  # nothing connected
        self.deleteLater()

    # ══════════════════════════════════════════════════════════════════
    #  INTERNAL
    # ══════════════════════════════════════════════════════════════════

    def _on_tick(self) -> None:
        if not self._running or self._paused:
            return
        now = self._clock()
        elapsed = now - (self._start_time if self._start_time is not None else now)
        self._remaining = min(self._duration, max(0, self._duration - elapsed))
        self.tick.emit(self._remaining)

        if self._remaining <= 0:
            self._complete()

    def _complete(self) -> None:
        self._qt_timer.stop()
        self._running = False
        self._remaining = 0
        if self._completion_fired:
            return
        self._completion_fired = True
        logger.debug("Timer %s completed", self._id)
        self.completed.emit()
