"""Auto Backup Worker - periodically queues a silent local backup.

Hey future me - this worker never writes a backup itself! It only decides WHEN one is
due and puts a LOCAL_BACKUP task on the TaskQueue, so backups stay serialized with
library updates and never run concurrently with them.

A backup is due when:
1. auto backup is enabled and a target uri is configured
2. interval_hours passed since the last run (persisted under AUTO_BACKUP_LAST_RUN_AT)
3. no LOCAL_BACKUP is already queued
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from novelsync.application.services.retry_policy import Sleep
from novelsync.application.workers.task_queue import TaskQueue
from novelsync.config.settings import BackupSettings
from novelsync.domain.entities import LocalBackupPayload, TaskKind
from novelsync.domain.ports import IKeyValueStore

logger = logging.getLogger(__name__)

AUTO_BACKUP_LAST_RUN_KEY = "AUTO_BACKUP_LAST_RUN_AT"


class AutoBackupWorker:
    """Queues LOCAL_BACKUP tasks on a fixed interval.

    Lifecycle:
    - Created by EngineContext
    - Runs as asyncio task via start()
    - Stopped via stop()
    """

    def __init__(
        self,
        task_queue: TaskQueue,
        kv_store: IKeyValueStore,
        settings: BackupSettings,
        clock: Callable[[], float] = time.time,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._task_queue = task_queue
        self._kv_store = kv_store
        self._settings = settings
        self._clock = clock
        self._sleep = sleep
        self._running = False
        self._stats = {"checks": 0, "backups_queued": 0, "last_queued_at": None}

    async def start(self) -> None:
        """Run checks until stop() is called."""
        self._running = True
        logger.info(
            f"AutoBackupWorker started (interval={self._settings.auto_backup_interval_hours}h, "
            f"check_interval={self._settings.auto_backup_check_interval}s)"
        )

        while self._running:
            try:
                await self.check_and_enqueue()
            except Exception as e:
                # Log but don't crash - we'll try again next cycle
                logger.exception(f"AutoBackupWorker error: {e}")

            await self._sleep(self._settings.auto_backup_check_interval)

    def stop(self) -> None:
        self._running = False
        logger.info("AutoBackupWorker stopping...")

    async def check_and_enqueue(self) -> str | None:
        """Queue a backup if one is due.

        Returns:
            Id of the queued task, or None when nothing was queued
        """
        self._stats["checks"] += 1
        target_uri = self._settings.auto_backup_target_uri
        if not self._settings.auto_backup_enabled or not target_uri:
            return None

        now = self._clock()
        interval = max(1, self._settings.auto_backup_interval_hours) * 3600
        last_run_at = await self._get_last_run_at()
        if last_run_at is not None and now - last_run_at < interval:
            return None

        if self._task_queue.has_task(TaskKind.LOCAL_BACKUP):
            logger.debug("Auto backup due but a LOCAL_BACKUP is already queued")
            return None

        task_id = await self._task_queue.add_task(
            TaskKind.LOCAL_BACKUP, LocalBackupPayload(target_uri=target_uri, silent=True)
        )
        await self._kv_store.set(AUTO_BACKUP_LAST_RUN_KEY, str(now))
        self._stats["backups_queued"] += 1
        self._stats["last_queued_at"] = now
        logger.info(f"Queued automatic backup to {target_uri}")
        return task_id

    async def _get_last_run_at(self) -> float | None:
        raw = await self._kv_store.get(AUTO_BACKUP_LAST_RUN_KEY)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid {AUTO_BACKUP_LAST_RUN_KEY} value: {raw!r}")
            return None

    def get_stats(self) -> dict[str, Any]:
        return {
            **self._stats,
            "running": self._running,
            "enabled": self._settings.auto_backup_enabled,
        }


# Hey future me - factory function for easy worker creation from app context
def create_auto_backup_worker(
    task_queue: TaskQueue,
    kv_store: IKeyValueStore,
    settings: BackupSettings,
) -> AutoBackupWorker:
    return AutoBackupWorker(task_queue=task_queue, kv_store=kv_store, settings=settings)
