"""Notification provider that hands messages to a host callback.

Hey future me - this is how the embedding app shows toasts! The host passes a plain
function (or coroutine function) and we call it with the Notification. Whatever the
callback raises becomes a failed NotificationResult, it never reaches the engine.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable

from novelsync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationResult,
    NotificationType,
)

logger = logging.getLogger(__name__)

NotificationCallback = Callable[[Notification], Awaitable[None] | None]


class CallbackNotificationProvider(INotificationProvider):
    """Delivers notifications to a sync or async callable."""

    def __init__(
        self,
        callback: NotificationCallback | None,
        supported_types: list[NotificationType] | None = None,
        name: str = "callback",
    ) -> None:
        self._callback = callback
        self._supported_types = list(supported_types or [])
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def supported_types(self) -> list[NotificationType]:
        return self._supported_types

    async def is_configured(self) -> bool:
        return self._callback is not None

    async def send(self, notification: Notification) -> NotificationResult:
        if self._callback is None:
            return NotificationResult(
                success=False,
                provider_name=self.name,
                notification_type=notification.type,
                error="No callback configured",
            )

        try:
            result = self._callback(notification)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning("[NOTIFICATION] Callback %s failed: %s", self.name, e)
            return NotificationResult(
                success=False,
                provider_name=self.name,
                notification_type=notification.type,
                error=str(e),
            )

        return NotificationResult(
            success=True,
            provider_name=self.name,
            notification_type=notification.type,
        )
