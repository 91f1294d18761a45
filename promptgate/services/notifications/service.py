"""
Канал уведомлений: координаторы публикуют Notification, слой представления
подписывается. Координаторы ничего не знают о том, кто и как их показывает.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class NotificationVariant(str, Enum):
    NORMAL = "normal"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.NORMAL

    model_config = {"frozen": True}


Listener = Callable[[Notification], None]


class NotificationBus:
    """Observer: emit() fans out to every subscribed listener, in subscription order."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(
        self,
        title: str,
        description: str,
        variant: NotificationVariant = NotificationVariant.NORMAL,
    ) -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                # Сломанный слушатель не должен ломать переход состояния
                logger.exception("notification_listener_failed", extra={"error": title})
        return notification

    @contextmanager
    def collect(self) -> Iterator[list[Notification]]:
        """Collect notifications emitted inside the block (one HTTP request)."""
        collected: list[Notification] = []
        unsubscribe = self.subscribe(collected.append)
        try:
            yield collected
        finally:
            unsubscribe()


def log_notification(notification: Notification) -> None:
    level = logging.WARNING if notification.variant == NotificationVariant.DESTRUCTIVE else logging.INFO
    logger.log(level, "notification", extra={"outcome": notification.title})
