"""SQLAlchemy implementation of the library datastore."""

import logging
from collections.abc import Sequence

from sqlalchemy import Integer, cast, func, select, update

from novelsync.domain.dtos import ChapterItem, SourceNovel
from novelsync.domain.entities import LOCAL_PLUGIN_ID, SyncTarget
from novelsync.domain.exceptions import EntityNotFoundError
from novelsync.domain.ports import ChapterUpsertResult, ILibraryDatastore
from novelsync.infrastructure.persistence.database import Database
from novelsync.infrastructure.persistence.models import (
    CategoryModel,
    ChapterModel,
    NovelCategoryModel,
    NovelModel,
    utc_now,
)
from novelsync.infrastructure.persistence.retry import with_db_retry

logger = logging.getLogger(__name__)

ONGOING_STATUS = "Ongoing"
DEFAULT_AUTHOR = "unknown"

# Stay well below SQLite's bound-parameter limit for IN (...) lookups.
_IN_CHUNK_SIZE = 500


def _chunks(values: Sequence[str], size: int = _IN_CHUNK_SIZE) -> list[Sequence[str]]:
    return [values[i : i + size] for i in range(0, len(values), size)]


class SqlLibraryDatastore(ILibraryDatastore):
    """Library datastore on top of Database.

    Hey future me - unlike the session-per-request repositories, this one opens its OWN
    short transaction per call (session_scope). The sync engine holds it for a whole run,
    and one long session across minutes of network I/O would pin the SQLite write lock.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    # =========================================================================
    # SYNC PORT
    # =========================================================================

    async def list_sync_targets(
        self, category_id: int | None = None, only_ongoing: bool = False
    ) -> list[SyncTarget]:
        stmt = select(NovelModel).where(
            NovelModel.in_library.is_(True),
            NovelModel.is_local.is_(False),
            NovelModel.plugin_id != LOCAL_PLUGIN_ID,
        )
        if category_id is not None:
            stmt = stmt.join(
                NovelCategoryModel, NovelCategoryModel.novel_id == NovelModel.id
            ).where(NovelCategoryModel.category_id == category_id)
        if only_ongoing:
            stmt = stmt.where(NovelModel.status == ONGOING_STATUS)
        stmt = stmt.distinct().order_by(NovelModel.name, NovelModel.id)

        async with self._db.session_scope() as session:
            result = await session.execute(stmt)
            models = result.scalars().all()

        return [
            SyncTarget(
                novel_id=model.id,
                plugin_id=model.plugin_id,
                path=model.path,
                name=model.name,
                total_pages=model.total_pages or 0,
            )
            for model in models
        ]

    async def get_total_pages(self, novel_id: int) -> int:
        async with self._db.session_scope() as session:
            result = await session.execute(
                select(NovelModel.total_pages).where(NovelModel.id == novel_id)
            )
            total_pages = result.scalar_one_or_none()
        return total_pages or 0

    @with_db_retry()
    async def update_metadata(self, novel_id: int, novel: SourceNovel) -> None:
        async with self._db.session_scope() as session:
            result = await session.execute(
                update(NovelModel)
                .where(NovelModel.id == novel_id)
                .values(
                    name=novel.name,
                    cover=novel.cover or None,
                    summary=novel.summary or None,
                    author=novel.author or DEFAULT_AUTHOR,
                    artist=novel.artist or None,
                    genres=novel.genres or None,
                    status=novel.status or None,
                    total_pages=novel.total_pages or 0,
                    rating=novel.rating,
                    word_count=novel.word_count,
                )
            )
            if result.rowcount == 0:  # type: ignore[attr-defined]
                raise EntityNotFoundError("Novel", novel_id)

    @with_db_retry()
    async def update_total_pages(self, novel_id: int, total_pages: int) -> None:
        async with self._db.session_scope() as session:
            await session.execute(
                update(NovelModel)
                .where(NovelModel.id == novel_id)
                .values(total_pages=total_pages)
            )

    # Hey future me - the whole chapter list goes in ONE transaction, so a crash mid-way
    # leaves either all or none of a page's changes. Rows are only written when something
    # actually differs; a re-sync of an unchanged novel is a read-only transaction.
    @with_db_retry()
    async def upsert_chapters(
        self, novel_id: int, chapters: list[ChapterItem], page: str | None = None
    ) -> ChapterUpsertResult:
        upsert = ChapterUpsertResult()
        if not chapters:
            return upsert

        paths = list(dict.fromkeys(chapter.path for chapter in chapters))
        new_models: list[ChapterModel] = []

        async with self._db.session_scope() as session:
            existing: dict[str, ChapterModel] = {}
            for chunk in _chunks(paths):
                result = await session.execute(
                    select(ChapterModel).where(
                        ChapterModel.novel_id == novel_id, ChapterModel.path.in_(chunk)
                    )
                )
                existing.update({model.path: model for model in result.scalars()})

            for position, chapter in enumerate(chapters):
                chapter_page = page or chapter.page or "1"
                release_time = chapter.release_time or None
                model = existing.get(chapter.path)

                if model is None:
                    model = ChapterModel(
                        novel_id=novel_id,
                        path=chapter.path,
                        name=chapter.name,
                        release_time=release_time,
                        chapter_number=chapter.chapter_number,
                        page=chapter_page,
                        position=position,
                    )
                    session.add(model)
                    existing[chapter.path] = model
                    new_models.append(model)
                    continue

                if (
                    model.name != chapter.name
                    or model.release_time != release_time
                    or model.page != chapter_page
                    or model.position != position
                ):
                    model.name = chapter.name
                    model.release_time = release_time
                    model.page = chapter_page
                    model.position = position
                    model.updated_time = utc_now()
                    if model not in new_models:
                        upsert.updated += 1

            await session.flush()
            upsert.inserted = len(new_models)
            upsert.inserted_chapters = [(model.id, model.name) for model in new_models]

        if upsert.changed:
            logger.debug(
                "Novel %d page %s: %d inserted, %d updated",
                novel_id,
                page or "-",
                upsert.inserted,
                upsert.updated,
            )
        return upsert

    @with_db_retry()
    async def bump_latest_chapter_at(self, novel_id: int, epoch_ms: int) -> None:
        # The WHERE clause makes this a SQL-level max(): an older value never wins.
        async with self._db.session_scope() as session:
            await session.execute(
                update(NovelModel)
                .where(NovelModel.id == novel_id, NovelModel.latest_chapter_at < epoch_ms)
                .values(latest_chapter_at=epoch_ms)
            )

    async def get_latest_chapter_at(self, novel_id: int) -> int:
        async with self._db.session_scope() as session:
            result = await session.execute(
                select(NovelModel.latest_chapter_at).where(NovelModel.id == novel_id)
            )
            value = result.scalar_one_or_none()
        return value or 0

    # =========================================================================
    # LIBRARY MANAGEMENT (host side)
    # =========================================================================

    async def add_novel(
        self,
        plugin_id: str,
        path: str,
        name: str,
        in_library: bool = True,
        status: str | None = None,
        total_pages: int = 0,
    ) -> int:
        """Insert a novel row and return its id."""
        async with self._db.session_scope() as session:
            model = NovelModel(
                plugin_id=plugin_id,
                path=path,
                name=name,
                in_library=in_library,
                is_local=plugin_id == LOCAL_PLUGIN_ID,
                status=status,
                total_pages=total_pages,
            )
            session.add(model)
            await session.flush()
            return model.id

    async def get_novel(self, novel_id: int) -> NovelModel:
        async with self._db.session_scope() as session:
            model = await session.get(NovelModel, novel_id)
        if model is None:
            raise EntityNotFoundError("Novel", novel_id)
        return model

    async def create_category(self, name: str, sort: int = 0) -> int:
        async with self._db.session_scope() as session:
            model = CategoryModel(name=name, sort=sort)
            session.add(model)
            await session.flush()
            return model.id

    async def assign_category(self, novel_id: int, category_id: int) -> None:
        async with self._db.session_scope() as session:
            session.add(NovelCategoryModel(novel_id=novel_id, category_id=category_id))

    async def get_chapters(self, novel_id: int) -> list[ChapterModel]:
        """Chapters of a novel in reading order (page, then position)."""
        async with self._db.session_scope() as session:
            result = await session.execute(
                select(ChapterModel)
                .where(ChapterModel.novel_id == novel_id)
                .order_by(
                    cast(ChapterModel.page, Integer), ChapterModel.position, ChapterModel.id
                )
            )
            return list(result.scalars().all())

    async def count_chapters(self, novel_id: int) -> int:
        async with self._db.session_scope() as session:
            result = await session.execute(
                select(func.count()).select_from(ChapterModel).where(
                    ChapterModel.novel_id == novel_id
                )
            )
            return int(result.scalar_one())
