"""Notification provider interfaces.

Hey future me - this is the PORT for user-visible messages ("toasts")! The engines
never render anything, they call NotificationService.notify() and the providers
behind this interface decide where the message ends up (log, host UI callback, ...).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Kinds of user-visible messages the engine emits."""

    SYNC_ITEM_FAILED = "sync_item_failed"
    SYNC_COMPLETED = "sync_completed"
    LIBRARY_EMPTY = "library_empty"
    TASK_FAILED = "task_failed"
    BACKUP_COMPLETED = "backup_completed"
    CUSTOM = "custom"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


@dataclass
class Notification:
    """Provider-agnostic payload.

    Example:
        Notification(
            type=NotificationType.SYNC_ITEM_FAILED,
            title="Library update",
            message="Lord of Mysteries: timeout of 5000ms exceeded",
            data={"novel_id": 12},
        )
    """

    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class NotificationResult:
    success: bool
    provider_name: str
    notification_type: NotificationType
    error: str | None = None


class INotificationProvider(ABC):
    """Interface for notification channels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider name (e.g. 'log', 'callback')."""

    @property
    @abstractmethod
    def supported_types(self) -> list[NotificationType]:
        """Notification types this provider handles. Empty list means ALL."""

    @abstractmethod
    async def send(self, notification: Notification) -> NotificationResult:
        """Deliver one notification."""

    @abstractmethod
    async def is_configured(self) -> bool:
        """True when the provider can deliver right now."""

    def supports(self, notification_type: NotificationType) -> bool:
        supported = self.supported_types
        return len(supported) == 0 or notification_type in supported


__all__ = [
    "INotificationProvider",
    "Notification",
    "NotificationPriority",
    "NotificationResult",
    "NotificationType",
]
