"""Tests for rebuilding an in-flight session after a restart."""

import pytest

from chunkpomo.chunks.coordinator import POMODORO_ALARM, ChunkCoordinator
from chunkpomo.errors import CorruptState
from chunkpomo.notifications import NotificationManager
from chunkpomo.restore import plan_restore, restore_session
from chunkpomo.scheduling import AlarmScheduler
from chunkpomo.timer.clock import ms_to_datetime
from chunkpomo.timer.session import SessionType

from helpers import START_MS, SignalCollector


WORK_MS = 1_500_000


def _record(started_ago, now=START_MS, **extra):
    record = {
        "id": "pomodoro_inflight",
        "type": "work",
        "duration": WORK_MS,
        "startTime": ms_to_datetime(now - started_ago).isoformat(),
        "endTime": None,
        "completed": False,
        "taskId": None,
        "isRunning": True,
        "isPaused": False,
    }
    record.update(extra)
    return record


# ═══════════════════════════════════════════════════════════════════════════
#  PLANNING
# ═══════════════════════════════════════════════════════════════════════════


class TestPlanRestore:

    def test_running_remaining_from_start_time(self):
        plan = plan_restore(_record(600_000), START_MS)
        assert plan.remaining == 900_000
        assert not plan.paused
        assert not plan.expired

    def test_expired_session(self):
        plan = plan_restore(_record(2_000_000), START_MS)
        assert plan.remaining == 0
        assert plan.expired

    def test_timer_start_time_wins(self):
        """A pause before the restart already shifted timerStartTime."""
        record = _record(600_000, timerStartTime=START_MS - 300_000)
        assert plan_restore(record, START_MS).remaining == 1_200_000

    def test_bad_timer_start_time_falls_back(self):
        record = _record(600_000, timerStartTime="soon")
        assert plan_restore(record, START_MS).remaining == 900_000

    def test_paused_uses_stored_remaining(self):
        record = _record(10 * 3_600_000, isPaused=True, remaining=700_000)
        plan = plan_restore(record, START_MS)
        assert plan.paused
        assert plan.remaining == 700_000

    def test_paused_remaining_is_clamped(self):
        record = _record(0, isPaused=True, remaining=WORK_MS * 2)
        assert plan_restore(record, START_MS).remaining == WORK_MS

    def test_paused_without_remaining_counts_from_start(self):
        plan = plan_restore(_record(600_000, isPaused=True), START_MS)
        assert not plan.paused
        assert plan.remaining == 900_000

    def test_keeps_type_and_task(self):
        record = _record(0, type="longBreak", duration=900_000, taskId="task_1")
        plan = plan_restore(record, START_MS)
        assert plan.session.type == SessionType.LONG_BREAK
        assert plan.session.task_id == "task_1"
        assert plan.session.start_time == ms_to_datetime(START_MS)

    def test_epoch_ms_start_time_accepted(self):
        record = _record(0, startTime=START_MS - 60_000)
        assert plan_restore(record, START_MS).remaining == WORK_MS - 60_000

    def test_stopped_record_is_not_running(self):
        plan = plan_restore(_record(600_000, isRunning=False), START_MS)
        assert not plan.running
        assert plan.remaining == 900_000

    def test_paused_record_counts_as_running(self):
        record = _record(600_000, isRunning=False, isPaused=True, remaining=700_000)
        assert plan_restore(record, START_MS).running

    def test_missing_flag_counts_as_running(self):
        record = _record(600_000)
        del record["isRunning"]
        assert plan_restore(record, START_MS).running

    @pytest.mark.parametrize("record", [
        None,
        [],
        "pomodoro",
        {"type": "work", "duration": 1, "startTime": "2026-10-19T09:00:00"},
        {"id": "x", "duration": 1, "startTime": "2026-10-19T09:00:00"},
        {"id": "x", "type": "nap", "duration": 1, "startTime": "2026-10-19T09:00:00"},
        {"id": "x", "type": "work", "startTime": "2026-10-19T09:00:00"},
        {"id": "x", "type": "work", "duration": 1},
        {"id": "x", "type": "work", "duration": "long", "startTime": "2026-10-19T09:00:00"},
        {"id": "x", "type": "work", "duration": 1, "startTime": "later"},
    ])
    def test_corrupt_records(self, record):
        with pytest.raises(CorruptState):
            plan_restore(record, START_MS)


class TestRestoreIntoManager:

    def test_expired_returns_none(self, manager):
        assert restore_session(manager, _record(2_000_000), START_MS) is None
        assert not manager.is_session_active()

    def test_stopped_record_returns_none(self, manager):
        assert restore_session(manager, _record(600_000, isRunning=False), START_MS) is None
        assert not manager.is_session_active()

    def test_restores_running(self, manager):
        session = restore_session(manager, _record(600_000), START_MS)
        assert session.id == "pomodoro_inflight"
        assert manager.is_session_running()
        assert manager.remaining_time() == 900_000


# ═══════════════════════════════════════════════════════════════════════════
#  COORDINATOR STARTUP
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def open_coordinator(qapp, store, clock):
    """Factory building coordinators over the shared store."""
    opened = []

    def _open():
        scheduler = AlarmScheduler()
        c = ChunkCoordinator(
            store, NotificationManager(permission_granted=True), scheduler,
            clock=clock,
        )
        opened.append(c)
        return c, scheduler

    yield _open
    for c in opened:
        c.destroy()


class TestCoordinatorRestore:

    def test_recent_session_is_restored(self, open_coordinator, store):
        store.save_current_session(_record(600_000))
        c, scheduler = open_coordinator()
        restored = SignalCollector()
        started = SignalCollector()
        c.session_restored.connect(restored)
        c.session_started.connect(started)
        c.initialize()

        assert c.is_session_active()
        assert abs(c.remaining_time() - 900_000) <= 1000
        assert restored.last.id == "pomodoro_inflight"
        assert len(started) == 0
        assert scheduler.delay_of(POMODORO_ALARM) == 900_000

    def test_expired_session_is_dropped(self, open_coordinator, store):
        store.save_current_session(_record(2_000_000))
        c, _ = open_coordinator()
        completed = SignalCollector()
        c.session_completed.connect(completed)
        c.initialize()

        assert not c.is_session_active()
        assert store.get_current_session() is None
        assert store.get_sessions() == []
        assert len(completed) == 0

    def test_stopped_session_is_dropped(self, open_coordinator, store):
        store.save_current_session(_record(600_000, isRunning=False))
        c, scheduler = open_coordinator()
        restored = SignalCollector()
        c.session_restored.connect(restored)
        c.initialize()

        assert not c.is_session_active()
        assert len(restored) == 0
        assert store.get_current_session() is None
        assert not scheduler.is_pending(POMODORO_ALARM)

    def test_corrupt_record_is_not_fatal(self, open_coordinator, store):
        store.save_current_session({"id": "pomodoro_broken"})
        c, _ = open_coordinator()
        errors = SignalCollector()
        c.error.connect(errors)
        c.initialize()

        assert c.is_initialized
        assert not c.is_session_active()
        assert isinstance(errors.last, CorruptState)
        assert store.get_current_session() is None

    def test_paused_session_survives_restart(self, open_coordinator, clock):
        first, _ = open_coordinator()
        first.initialize()
        first.start_work_session()
        clock.advance(300_000)
        first.pause_session()
        first.destroy()

        clock.advance(8 * 3_600_000)
        second, scheduler = open_coordinator()
        second.initialize()
        assert second.is_session_paused()
        assert second.remaining_time() == 1_200_000
        assert not scheduler.is_pending(POMODORO_ALARM)

        second.resume_session()
        clock.advance(200_000)
        second.manager.check_timer()
        assert second.remaining_time() == 1_000_000

    def test_resumed_session_survives_restart(self, open_coordinator, clock):
        first, _ = open_coordinator()
        first.initialize()
        first.start_work_session()
        clock.advance(100_000)
        first.pause_session()
        clock.advance(500_000)
        first.resume_session()
        first.destroy()

        clock.advance(100_000)
        second, _ = open_coordinator()
        second.initialize()
        assert second.is_session_running()
        assert second.remaining_time() == WORK_MS - 200_000

    def test_restored_break_keeps_its_type(self, open_coordinator, store):
        store.save_current_session(
            _record(60_000, type="shortBreak", duration=300_000)
        )
        c, _ = open_coordinator()
        c.initialize()
        assert c.current_session().type == SessionType.SHORT_BREAK

    def test_restored_session_completes_normally(self, open_coordinator, store, clock):
        store.save_current_session(_record(600_000))
        c, _ = open_coordinator()
        c.initialize()
        clock.advance(900_000)
        c.manager.check_timer()
        assert not c.is_session_active()
        assert store.get_sessions()[0]["id"] == "pomodoro_inflight"
