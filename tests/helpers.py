"""Shared test helpers for ChunkPomo."""

from chunkpomo.timer.session import SessionManager


START_MS = 1_790_000_000_000  # a fixed moment in 2026


class SignalCollector:
    """Utility to capture pyqtSignal emissions into a list."""

    def __init__(self):
        self.items: list = []

    def slot(self, *args):
        self.items.append(args if len(args) > 1 else args[0] if args else None)

    def __call__(self, *args):
        self.slot(*args)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def last(self):
        return self.items[-1] if self.items else None

    def clear(self):
        self.items.clear()


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def complete_session(manager: SessionManager, clock: FakeClock) -> None:
    """Jump the clock past the current session's end and tick once."""
    clock.advance(manager.remaining_time() + 1000)
    manager.check_timer()
