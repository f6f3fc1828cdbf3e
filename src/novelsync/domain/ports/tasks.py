"""Task handler contract and the collaborators behind non-sync task kinds."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from novelsync.domain.entities import (
    DownloadChapterPayload,
    DriveBackupPayload,
    DriveRestorePayload,
    LocalBackupPayload,
    LocalRestorePayload,
    TaskMetadata,
    TaskPayload,
)

# Hey future me - handlers get set_meta, NOT the metadata itself. They describe a change
# (transform old -> new) and the queue applies and publishes it. Synchronous on purpose
# so a progress update never yields control mid-item.
MetaTransform = Callable[[TaskMetadata], TaskMetadata]
SetMeta = Callable[[MetaTransform], None]
TaskHandler = Callable[[TaskPayload, SetMeta], Awaitable[None]]


class IBackupService(ABC):
    """Backup archive writer/reader. The archive layout is the service's business."""

    @abstractmethod
    async def local_backup(self, payload: LocalBackupPayload, set_meta: SetMeta) -> None:
        pass

    @abstractmethod
    async def local_restore(self, payload: LocalRestorePayload, set_meta: SetMeta) -> None:
        pass

    @abstractmethod
    async def drive_backup(self, payload: DriveBackupPayload, set_meta: SetMeta) -> None:
        pass

    @abstractmethod
    async def drive_restore(self, payload: DriveRestorePayload, set_meta: SetMeta) -> None:
        pass


class IChapterDownloader(ABC):
    """Downloads one chapter's content for offline reading."""

    @abstractmethod
    async def download_chapter(
        self, payload: DownloadChapterPayload, set_meta: SetMeta
    ) -> None:
        pass


__all__ = [
    "IBackupService",
    "IChapterDownloader",
    "MetaTransform",
    "SetMeta",
    "TaskHandler",
]
