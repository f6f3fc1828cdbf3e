"""Domain ports (interfaces) for dependency inversion."""

from novelsync.domain.ports.content_source import IContentSource
from novelsync.domain.ports.datastore import (
    ChapterUpsertResult,
    IKeyValueStore,
    ILibraryDatastore,
)
from novelsync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationPriority,
    NotificationResult,
    NotificationType,
)
from novelsync.domain.ports.tasks import (
    IBackupService,
    IChapterDownloader,
    MetaTransform,
    SetMeta,
    TaskHandler,
)

__all__ = [
    "ChapterUpsertResult",
    "IBackupService",
    "IChapterDownloader",
    "IContentSource",
    "IKeyValueStore",
    "ILibraryDatastore",
    "INotificationProvider",
    "MetaTransform",
    "Notification",
    "NotificationPriority",
    "NotificationResult",
    "NotificationType",
    "SetMeta",
    "TaskHandler",
]
