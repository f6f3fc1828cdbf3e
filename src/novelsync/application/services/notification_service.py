"""Notification service for user-visible messages.

Hey future me - this is the ONLY way engine code talks to the user! SyncEngine, the
task queue and the workers call the convenience methods below, the service fans the
message out to every configured provider in parallel.

Usage:
    service = NotificationService([LoggingNotificationProvider(), CallbackNotificationProvider(toast)])
    await service.notify_sync_item_failed("Lord of Mysteries", "timeout of 5000ms exceeded")
"""

import asyncio
import logging
from typing import Any

from novelsync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationPriority,
    NotificationResult,
    NotificationType,
)

logger = logging.getLogger(__name__)

EMPTY_LIBRARY_MESSAGE = "There's no novel to be updated"


class NotificationService:
    """Sends notifications through all configured providers.

    Providers are checked with is_configured() lazily on first use and cached; call
    invalidate_providers() after adding a provider or changing one's configuration.
    """

    def __init__(self, providers: list[INotificationProvider] | None = None) -> None:
        self._all_providers: list[INotificationProvider] = list(providers or [])
        self._providers: list[INotificationProvider] | None = None

    def add_provider(self, provider: INotificationProvider) -> None:
        self._all_providers.append(provider)
        self.invalidate_providers()

    def invalidate_providers(self) -> None:
        self._providers = None

    async def _init_providers(self) -> list[INotificationProvider]:
        if self._providers is not None:
            return self._providers

        providers: list[INotificationProvider] = []
        for provider in self._all_providers:
            try:
                if await provider.is_configured():
                    providers.append(provider)
                    logger.debug(f"[NOTIFICATION] Provider enabled: {provider.name}")
            except Exception as e:
                logger.warning(f"[NOTIFICATION] Failed to check provider {provider.name}: {e}")

        self._providers = providers
        return providers

    async def notify(
        self,
        notification_type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """Send a notification to every configured provider.

        Args:
            notification_type: Type of notification (providers may filter on it)
            title: Short title
            message: Message body shown to the user
            priority: Delivery urgency hint
            data: Extra structured data for providers that want it

        Returns:
            True if at least one provider accepted it (or none are configured)
        """
        notification = Notification(
            type=notification_type,
            title=title,
            message=message,
            priority=priority,
            data=data or {},
        )

        providers = await self._init_providers()
        if not providers:
            logger.debug(f"[NOTIFICATION] No providers configured: {message}")
            return True

        results = await self._send_to_providers(notification, providers)
        if not results:
            return True

        successes = sum(1 for r in results if r.success)
        if successes < len(results):
            failed = [r.provider_name for r in results if not r.success]
            logger.warning(
                f"[NOTIFICATION] {successes}/{len(results)} providers succeeded, failed: {failed}"
            )
        return successes > 0

    async def _send_to_providers(
        self, notification: Notification, providers: list[INotificationProvider]
    ) -> list[NotificationResult]:
        targets = [p for p in providers if p.supports(notification.type)]
        if not targets:
            return []
        # _send_to_provider never raises, so gather needs no return_exceptions
        return list(
            await asyncio.gather(*(self._send_to_provider(p, notification) for p in targets))
        )

    async def _send_to_provider(
        self, provider: INotificationProvider, notification: Notification
    ) -> NotificationResult:
        try:
            return await provider.send(notification)
        except Exception as e:
            logger.error(f"[NOTIFICATION] Provider {provider.name} error: {e}")
            return NotificationResult(
                success=False,
                provider_name=provider.name,
                notification_type=notification.type,
                error=str(e),
            )

    # =========================================================================
    # CONVENIENCE METHODS
    # =========================================================================

    async def notify_sync_item_failed(
        self, novel_name: str, error_message: str, novel_id: int | None = None
    ) -> bool:
        return await self.notify(
            NotificationType.SYNC_ITEM_FAILED,
            title="Library update",
            message=f"{novel_name}: {error_message}",
            priority=NotificationPriority.HIGH,
            data={"novel_id": novel_id, "novel_name": novel_name},
        )

    async def notify_library_empty(self) -> bool:
        return await self.notify(
            NotificationType.LIBRARY_EMPTY,
            title="Library update",
            message=EMPTY_LIBRARY_MESSAGE,
        )

    async def notify_sync_completed(
        self, succeeded: int, failed: int, skipped: int, new_chapters: int
    ) -> bool:
        return await self.notify(
            NotificationType.SYNC_COMPLETED,
            title="Library update",
            message=(
                f"Updated {succeeded} novel(s), {new_chapters} new chapter(s)"
                f" ({failed} failed, {skipped} skipped)"
            ),
            priority=NotificationPriority.LOW,
            data={
                "succeeded": succeeded,
                "failed": failed,
                "skipped": skipped,
                "new_chapters": new_chapters,
            },
        )

    async def notify_task_failed(self, display_name: str, error_message: str) -> bool:
        return await self.notify(
            NotificationType.TASK_FAILED,
            title=display_name,
            message=error_message,
            priority=NotificationPriority.HIGH,
        )
