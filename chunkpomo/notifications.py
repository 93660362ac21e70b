"""Notification sink for session and chunk lifecycle edges.

``NotificationManager`` keeps track of the notifications it has shown
and routes clicks back through Qt signals.  Desktop delivery goes
through a ``QSystemTrayIcon`` when one is attached.  Tray balloons have
no buttons, so a balloon click is reported as a click on button 0
("start next").
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from PyQt6.QtCore import QObject, pyqtSignal
from PyQt6.QtWidgets import QSystemTrayIcon

from .errors import PermissionDenied

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationOptions:
    title: str
    message: str
    buttons: tuple[str, ...] = field(default_factory=tuple)


class NotificationManager(QObject):
    """Show / clear notifications and report interaction.

    Signals
    -------
    shown(notification_id: str, options: NotificationOptions)
    clicked(notification_id: str)
    button_clicked(notification_id: str, button_index: int)
    closed(notification_id: str, by_user: bool)
    """

    shown = pyqtSignal(str, object)
    clicked = pyqtSignal(str)
    button_clicked = pyqtSignal(str, int)
    closed = pyqtSignal(str, bool)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        tray_icon: QSystemTrayIcon | None = None,
        permission_granted: bool | None = None,
    ) -> None:
        super().__init__(parent)
        self._tray_icon = tray_icon
        self._granted: bool = bool(permission_granted)
        self._permission_fixed = permission_granted is not None
        self._active: dict[str, NotificationOptions] = {}
        self._last_id: str | None = None

        if tray_icon is not None:
            tray_icon.messageClicked.connect(self._on_tray_message_clicked)

    # ── permission ──────────────────────────────────────────────────────

    def request_permission(self) -> bool:
        """Grant permission when a tray icon can show messages.

        An explicit ``permission_granted`` passed to the constructor
        always wins.
        """
        if not self._permission_fixed:
            self._granted = (
                self._tray_icon is not None
                and QSystemTrayIcon.supportsMessages()
            )
            if not self._granted:
                logger.warning("Desktop notifications are not available")
        return self._granted

    def has_permission(self) -> bool:
        return self._granted

    def set_permission(self, granted: bool) -> None:
        self._granted = granted
        self._permission_fixed = True

    # ── show / clear ────────────────────────────────────────────────────

    def show(
        self,
        title: str,
        message: str,
        buttons: list[str] | tuple[str, ...] = (),
    ) -> str:
        return self.show_notification(
            NotificationOptions(title, message, tuple(buttons))
        )

    def show_notification(self, options: NotificationOptions) -> str:
        if not self._granted:
            raise PermissionDenied("Notification permission not granted")

        notification_id = f"notification_{uuid.uuid4().hex[:12]}"
        self._active[notification_id] = options
        self._last_id = notification_id

        if self._tray_icon is not None:
            self._tray_icon.showMessage(options.title, options.message)
        logger.debug("Notification %s: %s", notification_id, options.title)
        self.shown.emit(notification_id, options)
        return notification_id

    def clear(self, notification_id: str) -> None:
        if self._active.pop(notification_id, None) is not None:
            self.closed.emit(notification_id, False)
        if self._last_id == notification_id:
            self._last_id = None

    def clear_all(self) -> None:
        for notification_id in list(self._active):
            self.clear(notification_id)

    def active_notifications(self) -> dict[str, NotificationOptions]:
        return dict(self._active)

    # ── interaction ─────────────────────────────────────────────────────

    def click(self, notification_id: str, button_index: int | None = None) -> None:
        """Report a click on a notification (or one of its buttons)."""
        if notification_id not in self._active:
            logger.debug("Click on unknown notification %s", notification_id)
            return
        if button_index is None:
            self.clicked.emit(notification_id)
        else:
            self.button_clicked.emit(notification_id, button_index)

    def _on_tray_message_clicked(self) -> None:
        if self._last_id is not None:
            self.click(self._last_id, 0)


# ── notification content ─────────────────────────────────────────────────

APP_TITLE = "ChunkPomo"


def work_session_complete_notification() -> NotificationOptions:
    return NotificationOptions(
        title=APP_TITLE,
        message="Work session complete! Time for a break.",
        buttons=("Start break", "Keep going"),
    )


def break_complete_notification() -> NotificationOptions:
    return NotificationOptions(
        title=APP_TITLE,
        message="Break is over! Ready for the next session?",
        buttons=("Start work", "Skip"),
    )


def chunk_complete_notification(completed_pomodoros: int) -> NotificationOptions:
    return NotificationOptions(
        title=f"{APP_TITLE} chunk",
        message=f"Chunk complete! You finished {completed_pomodoros} pomodoros.",
        buttons=("Start new chunk",),
    )


def chunk_time_up_notification() -> NotificationOptions:
    return NotificationOptions(
        title=f"{APP_TITLE} chunk",
        message="Chunk time is up.",
    )
