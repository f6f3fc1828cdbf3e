"""Dispatch table from TaskKind to task handler."""

from novelsync.application.services.sync_engine import SyncEngine
from novelsync.domain.entities import (
    DownloadChapterPayload,
    DriveBackupPayload,
    DriveRestorePayload,
    LocalBackupPayload,
    LocalRestorePayload,
    TaskKind,
    TaskPayload,
    UpdateLibraryPayload,
)
from novelsync.domain.ports import IBackupService, IChapterDownloader, SetMeta, TaskHandler


def build_task_handlers(
    sync_engine: SyncEngine,
    backup_service: IBackupService,
    downloader: IChapterDownloader,
) -> dict[TaskKind, TaskHandler]:
    """Build the handler table TaskQueue dispatches on.

    Each handler narrows the payload with a match, so a task whose payload does not
    fit its kind fails loudly instead of reaching the wrong collaborator.
    """

    async def update_library(payload: TaskPayload, set_meta: SetMeta) -> None:
        match payload:
            case UpdateLibraryPayload():
                await sync_engine.run(payload, set_meta)
            case _:
                raise TypeError(f"UPDATE_LIBRARY got {type(payload).__name__}")

    async def download_chapter(payload: TaskPayload, set_meta: SetMeta) -> None:
        match payload:
            case DownloadChapterPayload():
                await downloader.download_chapter(payload, set_meta)
            case _:
                raise TypeError(f"DOWNLOAD_CHAPTER got {type(payload).__name__}")

    async def local_backup(payload: TaskPayload, set_meta: SetMeta) -> None:
        match payload:
            case LocalBackupPayload():
                await backup_service.local_backup(payload, set_meta)
            case _:
                raise TypeError(f"LOCAL_BACKUP got {type(payload).__name__}")

    async def local_restore(payload: TaskPayload, set_meta: SetMeta) -> None:
        match payload:
            case LocalRestorePayload():
                await backup_service.local_restore(payload, set_meta)
            case _:
                raise TypeError(f"LOCAL_RESTORE got {type(payload).__name__}")

    async def drive_backup(payload: TaskPayload, set_meta: SetMeta) -> None:
        match payload:
            case DriveBackupPayload():
                await backup_service.drive_backup(payload, set_meta)
            case _:
                raise TypeError(f"DRIVE_BACKUP got {type(payload).__name__}")

    async def drive_restore(payload: TaskPayload, set_meta: SetMeta) -> None:
        match payload:
            case DriveRestorePayload():
                await backup_service.drive_restore(payload, set_meta)
            case _:
                raise TypeError(f"DRIVE_RESTORE got {type(payload).__name__}")

    return {
        TaskKind.UPDATE_LIBRARY: update_library,
        TaskKind.DOWNLOAD_CHAPTER: download_chapter,
        TaskKind.LOCAL_BACKUP: local_backup,
        TaskKind.LOCAL_RESTORE: local_restore,
        TaskKind.DRIVE_BACKUP: drive_backup,
        TaskKind.DRIVE_RESTORE: drive_restore,
    }
