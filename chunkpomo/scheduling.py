"""Named one-shot alarms.

Complements the per-second tick loop: an alarm set for the remaining
time of a session makes sure completion is noticed right away even if
ticks were delayed, e.g. after the machine slept.  At most one alarm is
pending per name; creating one replaces the previous.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

logger = logging.getLogger(__name__)


class AlarmScheduler(QObject):
    """Signals
    -------
    alarm_fired(name: str)
    """

    alarm_fired = pyqtSignal(str)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._alarms: dict[str, QTimer] = {}

    def create(self, name: str, delay_ms: int) -> None:
        self.clear(name)
        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.setInterval(max(0, int(delay_ms)))
        timer.timeout.connect(lambda: self._fire(name))
        self._alarms[name] = timer
        timer.start()
        logger.debug("Alarm %s set for %d ms", name, delay_ms)

    def clear(self, name: str) -> bool:
        """Cancel *name*; return whether an alarm was pending."""
        timer = self._alarms.pop(name, None)
        if timer is None:
            return False
        timer.stop()
        timer.deleteLater()
        logger.debug("Alarm %s cleared", name)
        return True

    def clear_all(self) -> None:
        for name in list(self._alarms):
            self.clear(name)

    def is_pending(self, name: str) -> bool:
        return name in self._alarms

    def pending(self) -> list[str]:
        return sorted(self._alarms)

    def delay_of(self, name: str) -> int | None:
        timer = self._alarms.get(name)
        return timer.interval() if timer is not None else None

    def _fire(self, name: str) -> None:
        timer = self._alarms.pop(name, None)
        if timer is None:
            return
        timer.deleteLater()
        logger.debug("Alarm %s fired", name)
        self.alarm_fired.emit(name)
