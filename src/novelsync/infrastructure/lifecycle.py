"""Engine lifecycle: composition, startup and shutdown.

Hey future me - this is the ONE place where everything gets wired together! The host
(a desktop app, a bot, a test) builds an EngineContext, awaits startup(), uses the
engines, and awaits shutdown(). Or uses engine_lifespan() as an async context manager.

Startup order matters:
1. logging (so everything after is logged)
2. SQLite directory + tables
3. queue restore (interrupted tasks come back first)
4. update-on-launch enqueue
5. auto backup worker
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from pathlib import Path

from sqlalchemy.engine import make_url

from novelsync.application.services import NotificationService, SearchEngine, SyncEngine
from novelsync.application.workers import (
    AutoBackupWorker,
    TaskQueue,
    build_task_handlers,
    create_auto_backup_worker,
)
from novelsync.config import Settings, get_settings
from novelsync.domain.entities import TaskKind, TaskPayload
from novelsync.domain.exceptions import ConfigurationError
from novelsync.domain.ports import IBackupService, IChapterDownloader, IContentSource
from novelsync.infrastructure.notifications import (
    CallbackNotificationProvider,
    LoggingNotificationProvider,
    NotificationCallback,
)
from novelsync.infrastructure.observability import configure_logging
from novelsync.infrastructure.persistence import (
    Database,
    SqlKeyValueStore,
    SqlLibraryDatastore,
)
from novelsync.infrastructure.plugins import SourceRegistry

logger = logging.getLogger(__name__)


# SQLite creates -journal/-wal files next to the .db file, so the parent directory has
# to exist before the engine connects. In-memory URLs have no path.
def _ensure_sqlite_directory(settings: Settings) -> None:
    url = make_url(settings.database.url)
    if not url.drivername.startswith("sqlite") or not url.database:
        return
    if url.database == ":memory:":
        return

    db_path = Path(url.database)
    try:
        if str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}"
        ) from exc


class EngineContext:
    """Owns every long-lived engine object for one host process."""

    def __init__(
        self,
        backup_service: IBackupService,
        downloader: IChapterDownloader,
        settings: Settings | None = None,
        sources: list[IContentSource] | None = None,
        notify_callback: NotificationCallback | None = None,
    ) -> None:
        self.settings = settings or get_settings()

        self.database = Database(self.settings)
        self.datastore = SqlLibraryDatastore(self.database)
        self.kv_store = SqlKeyValueStore(self.database)
        self.sources = SourceRegistry(sources)

        self.notifications = NotificationService([LoggingNotificationProvider()])
        if notify_callback is not None:
            self.notifications.add_provider(CallbackNotificationProvider(notify_callback))

        self.sync_engine = SyncEngine(
            datastore=self.datastore,
            sources=self.sources,
            kv_store=self.kv_store,
            notifications=self.notifications,
            settings=self.settings.sync,
        )
        self.search_engine = SearchEngine(self.sources, self.settings.search)

        self.task_queue = TaskQueue(
            kv_store=self.kv_store,
            handlers=build_task_handlers(self.sync_engine, backup_service, downloader),
            notifications=self.notifications,
            store_key=self.settings.queue.store_key,
        )
        # The engine and the queue need each other: the sync handler lives in the queue,
        # new-chapter downloads go back into it.
        self.sync_engine.set_enqueue(self._enqueue)

        self.auto_backup: AutoBackupWorker = create_auto_backup_worker(
            self.task_queue, self.kv_store, self.settings.backup
        )
        self._auto_backup_task: asyncio.Task[None] | None = None
        self._started = False

    async def _enqueue(self, kind: TaskKind, payload: TaskPayload) -> str:
        return await self.task_queue.add_task(kind, payload)

    @property
    def is_started(self) -> bool:
        return self._started

    async def startup(self) -> None:
        if self._started:
            return

        configure_logging(
            self.settings.log_level,
            json_format=self.settings.observability.log_json_format,
            app_name=self.settings.app_name,
        )
        logger.info("Starting %s (env=%s)", self.settings.app_name, self.settings.app_env)

        _ensure_sqlite_directory(self.settings)
        await self.database.create_tables()

        restored = await self.task_queue.restore()
        if restored:
            logger.info("Restored %d queued task(s)", restored)

        if self.settings.queue.update_library_on_launch and not self.task_queue.has_task(
            TaskKind.UPDATE_LIBRARY
        ):
            await self.task_queue.add_task(TaskKind.UPDATE_LIBRARY)

        if self.settings.backup.auto_backup_enabled:
            self._auto_backup_task = asyncio.create_task(self.auto_backup.start())

        self._started = True

    async def shutdown(self) -> None:
        if not self._started:
            return
        logger.info("Shutting down %s", self.settings.app_name)

        self.search_engine.close()

        if self._auto_backup_task is not None:
            self.auto_backup.stop()
            self._auto_backup_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._auto_backup_task
            self._auto_backup_task = None

        try:
            await self.task_queue.shutdown()
        finally:
            await self.database.close()
            self._started = False


@asynccontextmanager
async def engine_lifespan(
    backup_service: IBackupService,
    downloader: IChapterDownloader,
    settings: Settings | None = None,
    sources: list[IContentSource] | None = None,
    notify_callback: NotificationCallback | None = None,
) -> AsyncGenerator[EngineContext, None]:
    """Everything before `yield` is startup, everything after is shutdown."""
    context = EngineContext(
        backup_service,
        downloader,
        settings=settings,
        sources=sources,
        notify_callback=notify_callback,
    )
    await context.startup()
    try:
        yield context
    finally:
        await context.shutdown()


__all__ = ["EngineContext", "engine_lifespan"]
