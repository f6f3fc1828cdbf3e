"""Notification provider that writes messages to the application log."""

import logging

from novelsync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationPriority,
    NotificationResult,
    NotificationType,
)

logger = logging.getLogger(__name__)

_LEVELS = {
    NotificationPriority.LOW: logging.DEBUG,
    NotificationPriority.NORMAL: logging.INFO,
    NotificationPriority.HIGH: logging.WARNING,
}


class LoggingNotificationProvider(INotificationProvider):
    """Always-on fallback channel: every notification becomes one log line."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    @property
    def name(self) -> str:
        return "log"

    @property
    def supported_types(self) -> list[NotificationType]:
        return []

    async def is_configured(self) -> bool:
        return True

    async def send(self, notification: Notification) -> NotificationResult:
        level = _LEVELS.get(notification.priority, logging.INFO)
        self._log.log(
            level,
            "[NOTIFICATION] %s: %s",
            notification.title,
            notification.message,
            extra={"notification_type": notification.type.value},
        )
        return NotificationResult(
            success=True,
            provider_name=self.name,
            notification_type=notification.type,
        )
