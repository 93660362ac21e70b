"""Shared pytest fixtures for ChunkPomo tests."""

import sys
import pytest

from PyQt6.QtCore import QCoreApplication

from chunkpomo.chunks.coordinator import ChunkCoordinator
from chunkpomo.database.db import configure_engine, init_db
from chunkpomo.database.store import PomodoroStore
from chunkpomo.notifications import NotificationManager
from chunkpomo.scheduling import AlarmScheduler
from chunkpomo.timer.session import SessionManager

from helpers import FakeClock


@pytest.fixture(scope="session")
def qapp():
    """A single QCoreApplication instance shared across the test run."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(qapp, clock):
    """SessionManager with default settings on a fake clock."""
    return SessionManager(clock=clock)


@pytest.fixture
def store(qapp):
    return PomodoroStore()


@pytest.fixture
def notifier(qapp):
    return NotificationManager(permission_granted=True)


@pytest.fixture
def scheduler(qapp):
    return AlarmScheduler()


@pytest.fixture
def coordinator(store, notifier, scheduler, clock):
    """Initialized coordinator with notifications allowed."""
    c = ChunkCoordinator(store, notifier, scheduler, clock=clock)
    c.initialize()
    yield c
    c.destroy()
