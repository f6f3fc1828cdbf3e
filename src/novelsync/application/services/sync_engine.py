"""Library synchronization engine.

Hey future me - this is the UPDATE_LIBRARY handler! It refreshes every eligible library
novel from its content source with a small pull-based worker pool:

    targets --> shared cursor --> W workers --> retry --> refresh --> datastore
                                       |
                                       +--> DedupCache (skip recent successes)

One novel failing (even after retries) never aborts the batch; the user gets a toast
naming the novel and the run moves on. The run has no cancellation: once started it
finishes, only single network calls time out (SourceHttpClient enforces that).
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from novelsync.application.cache.dedup_cache import DedupCache
from novelsync.application.services.notification_service import NotificationService
from novelsync.application.services.progress import ProgressThrottle
from novelsync.application.services.retry_policy import RetryPolicy, Sleep
from novelsync.config.settings import SyncSettings
from novelsync.domain.dtos import ChapterItem
from novelsync.domain.entities import (
    LOCAL_PLUGIN_ID,
    DownloadChapterPayload,
    SyncReport,
    SyncTarget,
    TaskKind,
    TaskPayload,
    UpdateLibraryPayload,
)
from novelsync.domain.exceptions import classify_error, get_error_message
from novelsync.domain.ports import (
    ChapterUpsertResult,
    IContentSource,
    IKeyValueStore,
    ILibraryDatastore,
    SetMeta,
)

if TYPE_CHECKING:
    from novelsync.infrastructure.plugins.registry import SourceRegistry

logger = logging.getLogger(__name__)

LAST_UPDATE_TIME_KEY = "LAST_UPDATE_TIME"
LAST_UPDATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

Enqueue = Callable[[TaskKind, TaskPayload], Awaitable[str]]

# Formats seen in the wild besides ISO 8601 (which fromisoformat handles).
_RELEASE_TIME_FORMATS = (
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def parse_release_time(value: str | None) -> int | None:
    """Parse a chapter release time into epoch milliseconds.

    Naive timestamps are taken as UTC. Returns None for empty or unparseable values,
    sources put anything in that field ("2 days ago", "Chapter 5", ...).
    """
    if not value:
        return None
    text = value.strip()
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _RELEASE_TIME_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp() * 1000)


def latest_release_epoch(chapters: list[ChapterItem]) -> int:
    """Highest parseable release time among `chapters`, 0 when none parse."""
    epochs = (parse_release_time(chapter.release_time) for chapter in chapters)
    return max((epoch for epoch in epochs if epoch is not None), default=0)


@dataclass
class NovelRefreshResult:
    """What refreshing a single novel changed."""

    inserted: int = 0
    updated: int = 0
    pages_fetched: int = 0
    pages_failed: int = 0

    def add(self, upsert: ChapterUpsertResult) -> None:
        self.inserted += upsert.inserted
        self.updated += upsert.updated


class SyncEngine:
    """Refreshes library novels from their content sources.

    Owns its DedupCache, so two engines never share skip state. All timing goes through
    the injected clock/sleep, tests run a whole batch without real waiting.

    Example:
        engine = SyncEngine(datastore, registry, kv_store, notifications, settings.sync)
        report = await engine.run(UpdateLibraryPayload(), set_meta)
    """

    def __init__(
        self,
        datastore: ILibraryDatastore,
        sources: "SourceRegistry",
        kv_store: IKeyValueStore,
        notifications: NotificationService,
        settings: SyncSettings | None = None,
        enqueue: Enqueue | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        wall_clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._datastore = datastore
        self._sources = sources
        self._kv_store = kv_store
        self._notifications = notifications
        self._settings = settings or SyncSettings()
        self._enqueue = enqueue
        self._clock = clock
        self._sleep = sleep
        self._wall_clock = wall_clock
        self._dedup = DedupCache(self._settings.dedup_window, clock=clock)
        self._retry = RetryPolicy(
            max_retries=self._settings.max_retries,
            delay=self._settings.retry_delay,
            sleep=sleep,
        )

    @property
    def dedup(self) -> DedupCache:
        return self._dedup

    def set_enqueue(self, enqueue: Enqueue | None) -> None:
        """Wire the task queue used for chapter download fan-out."""
        self._enqueue = enqueue

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(self, payload: UpdateLibraryPayload, set_meta: SetMeta) -> SyncReport:
        """Refresh every eligible novel for the payload's scope.

        Args:
            payload: Scope of the run (category_id None = whole library)
            set_meta: Queue callback used to publish progress

        Returns:
            SyncReport with per-bucket counts
        """
        set_meta(lambda m: replace(m, is_running=True, progress=0.0))

        def publish(value: float, text: str | None) -> None:
            set_meta(lambda m: replace(m, progress=value, progress_text=text))

        throttle = ProgressThrottle(
            publish,
            interval=self._settings.progress_interval,
            delta=self._settings.progress_delta,
            clock=self._clock,
        )

        try:
            targets = await self._datastore.list_sync_targets(
                category_id=payload.category_id,
                only_ongoing=self._settings.only_update_ongoing,
            )
            report = SyncReport(total=len(targets))

            if not targets:
                logger.info(
                    f"Library update: no eligible novels (category={payload.category_id})"
                )
                await self._notifications.notify_library_empty()
                return report

            pruned = self._dedup.prune()
            if pruned:
                logger.debug(f"Pruned {pruned} stale dedup entries")
            await self._record_last_update_time()
            logger.info(
                f"Library update started: {len(targets)} novel(s), "
                f"concurrency={self._settings.concurrency}"
            )
            await self._run_pool(targets, report, throttle)
            logger.info(
                f"Library update finished: {report.succeeded} succeeded, "
                f"{report.failed} failed, {report.skipped} skipped, "
                f"{report.inserted_chapters} new chapter(s)"
            )
            if report.succeeded:
                await self._notifications.notify_sync_completed(
                    report.succeeded, report.failed, report.skipped, report.inserted_chapters
                )
            return report
        finally:
            throttle.flush()
            set_meta(lambda m: replace(m, progress=1.0, is_running=False))

    async def _record_last_update_time(self) -> None:
        # Bookkeeping only. A locked or broken key-value store must not cost the run.
        stamp = self._wall_clock().strftime(LAST_UPDATE_TIME_FORMAT)
        try:
            await self._kv_store.set(LAST_UPDATE_TIME_KEY, stamp)
        except Exception as e:
            logger.warning(f"Could not record {LAST_UPDATE_TIME_KEY}: {get_error_message(e)}")

    async def _run_pool(
        self, targets: list[SyncTarget], report: SyncReport, throttle: ProgressThrottle
    ) -> None:
        # Hey future me - pull pool, NOT a static split! Each worker grabs the next index
        # from the shared cursor, so one slow novel only blocks its own worker. Reading and
        # bumping `cursor` has no await in between, so no two workers get the same index.
        total = len(targets)
        cursor = 0

        async def worker() -> None:
            nonlocal cursor
            while cursor < total:
                target = targets[cursor]
                cursor += 1
                skipped = await self._process_target(target, report, throttle)
                if not skipped and self._settings.inter_item_delay > 0:
                    await self._sleep(self._settings.inter_item_delay)

        workers = min(self._settings.concurrency, total)
        await asyncio.gather(*(worker() for _ in range(workers)))

    async def _process_target(
        self, target: SyncTarget, report: SyncReport, throttle: ProgressThrottle
    ) -> bool:
        """Sync one novel. Returns True when it was skipped as a recent success."""
        total = report.total
        try:
            if self._dedup.is_fresh(target.novel_id):
                logger.debug(f"Skipping {target.name} (updated within dedup window)")
                report.skipped += 1
                return True

            throttle.report(report.processed / total, target.name)

            def on_retry(attempt: int, error: Exception) -> None:
                logger.warning(
                    f"Updating {target.name} failed "
                    f"(attempt {attempt}/{self._retry.max_attempts}), "
                    f"retrying in {self._retry.delay:.1f}s: {get_error_message(error)}"
                )

            try:
                result = await self._retry.run(lambda: self.update_novel(target), on_retry)
            except Exception as e:
                error = classify_error(e, target.plugin_id)
                message = get_error_message(error)
                logger.error(
                    f"Updating {target.name} failed after "
                    f"{self._retry.max_attempts} attempt(s): {message}",
                    exc_info=True,
                )
                report.failed += 1
                report.failures[target.name] = message
                await self._notifications.notify_sync_item_failed(
                    target.name, message, target.novel_id
                )
                return False

            self._dedup.mark(target.novel_id)
            report.succeeded += 1
            report.inserted_chapters += result.inserted
            report.updated_chapters += result.updated
            return False
        finally:
            throttle.report(report.processed / total, target.name)

    # =========================================================================
    # REFRESH BODY
    # =========================================================================

    async def update_novel(self, target: SyncTarget) -> NovelRefreshResult:
        """Refresh one novel: metadata, first chapter list, then extra pages.

        Raises whatever the content source or datastore raises; the caller retries.
        """
        result = NovelRefreshResult()
        if target.plugin_id == LOCAL_PLUGIN_ID:
            return result
        source = self._sources.get(target.plugin_id)
        if source is None:
            raise classify_error(
                f"Content source {target.plugin_id} is not installed", target.plugin_id
            )

        old_total_pages = await self._datastore.get_total_pages(target.novel_id)
        novel = await source.fetch_novel(target.path)

        if self._settings.refresh_metadata:
            await self._datastore.update_metadata(target.novel_id, novel)
        elif novel.total_pages:
            await self._datastore.update_total_pages(target.novel_id, novel.total_pages)

        await self._store_chapters(target, novel.name, list(novel.chapters), None, result)

        if novel.total_pages and novel.total_pages > 1 and source.supports_pages:
            await self._sync_extra_pages(
                source, target, novel.name, old_total_pages, novel.total_pages, result
            )
        return result

    async def _sync_extra_pages(
        self,
        source: IContentSource,
        target: SyncTarget,
        novel_name: str,
        old_total_pages: int,
        new_total_pages: int,
        result: NovelRefreshResult,
    ) -> None:
        # The previously-last page may have grown since we fetched it, so it gets
        # re-fetched along with every page beyond it.
        first_page = old_total_pages if old_total_pages > 1 else old_total_pages + 1
        for page_number in range(first_page, new_total_pages + 1):
            page = str(page_number)
            try:
                source_page = await source.fetch_page(target.path, page)
                await self._store_chapters(
                    target, novel_name, list(source_page.chapters), page, result
                )
                result.pages_fetched += 1
            except Exception as e:
                result.pages_failed += 1
                message = get_error_message(classify_error(e, target.plugin_id))
                logger.warning(f"Failed to fetch page {page} for {novel_name}: {message}")

    async def update_novel_page(self, target: SyncTarget, page: str) -> ChapterUpsertResult:
        """Refresh a single chapter-list page of one novel."""
        source = self._sources.get(target.plugin_id)
        if source is None:
            raise classify_error(
                f"Content source {target.plugin_id} is not installed", target.plugin_id
            )
        source_page = await source.fetch_page(target.path, page)
        return await self._store_chapters(
            target, target.name, list(source_page.chapters), page, NovelRefreshResult()
        )

    async def _store_chapters(
        self,
        target: SyncTarget,
        novel_name: str,
        chapters: list[ChapterItem],
        page: str | None,
        result: NovelRefreshResult,
    ) -> ChapterUpsertResult:
        upsert = await self._datastore.upsert_chapters(target.novel_id, chapters, page)
        result.add(upsert)

        latest = latest_release_epoch(chapters)
        if latest > 0:
            await self._datastore.bump_latest_chapter_at(target.novel_id, latest)

        if self._settings.download_new_chapters and self._enqueue is not None:
            for chapter_id, chapter_name in upsert.inserted_chapters:
                await self._enqueue(
                    TaskKind.DOWNLOAD_CHAPTER,
                    DownloadChapterPayload(
                        chapter_id=chapter_id,
                        novel_name=novel_name,
                        chapter_name=chapter_name,
                    ),
                )
        return upsert

    def get_stats(self) -> dict[str, object]:
        return {
            "concurrency": self._settings.concurrency,
            "max_retries": self._retry.max_retries,
            "dedup": self._dedup.get_stats(),
        }
