"""Notification providers package.

Hey future me - each provider delivers notifications through a different channel:
- logging_provider: application log (always configured)
- callback_provider: host-supplied function, e.g. a toast in the UI

Register them with NotificationService.
"""

from novelsync.infrastructure.notifications.callback_provider import (
    CallbackNotificationProvider,
    NotificationCallback,
)
from novelsync.infrastructure.notifications.logging_provider import (
    LoggingNotificationProvider,
)

__all__ = [
    "CallbackNotificationProvider",
    "LoggingNotificationProvider",
    "NotificationCallback",
]
