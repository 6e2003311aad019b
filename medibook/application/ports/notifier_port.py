from __future__ import annotations

from typing import Protocol

from medibook.domain.entities.notification import Notification


class NotifierPort(Protocol):
    def notify(self, notification: Notification) -> None:
        ...
