from __future__ import annotations

from collections import deque
import logging
from threading import Lock

from medibook.domain.entities.notification import Notification


logger = logging.getLogger(__name__)


class NotificationCenter:
    """Queue of user-facing notifications waiting to be shown as toasts."""

    def __init__(self, *, history_size: int = 50):
        self._queue: deque[Notification] = deque(maxlen=max(history_size, 1))
        self._lock = Lock()

    def notify(self, notification: Notification) -> None:
        level = logging.WARNING if notification.variant == "destructive" else logging.INFO
        logger.log(
            level,
            "notification_center: %s title=%r description=%r",
            notification.kind,
            notification.title,
            notification.description,
        )
        with self._lock:
            self._queue.append(notification)

    def peek(self) -> list[Notification]:
        with self._lock:
            return list(self._queue)

    def drain(self) -> list[Notification]:
        with self._lock:
            items = list(self._queue)
            self._queue.clear()
        return items
