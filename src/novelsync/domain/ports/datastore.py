"""Persistence ports consumed by the engines."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from novelsync.domain.dtos import ChapterItem, SourceNovel
from novelsync.domain.entities import SyncTarget


@dataclass
class ChapterUpsertResult:
    """What one upsert_chapters() call changed."""

    inserted: int = 0
    updated: int = 0
    # (chapter_id, chapter_name) for every row created by this call
    inserted_chapters: list[tuple[int, str]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.updated)


class ILibraryDatastore(ABC):
    """Relational store for novels and chapters.

    Hey future me - every write here is scoped to ONE novel id. The sync engine relies
    on that: two workers never touch the same novel's rows.
    """

    @abstractmethod
    async def list_sync_targets(
        self, category_id: int | None = None, only_ongoing: bool = False
    ) -> list[SyncTarget]:
        """In-library novels eligible for sync (never local ones)."""

    @abstractmethod
    async def get_total_pages(self, novel_id: int) -> int:
        """Stored page count, 0 when unknown."""

    @abstractmethod
    async def update_metadata(self, novel_id: int, novel: SourceNovel) -> None:
        """Overwrite display metadata with freshly fetched values."""

    @abstractmethod
    async def update_total_pages(self, novel_id: int, total_pages: int) -> None:
        """Update only the page count."""

    @abstractmethod
    async def upsert_chapters(
        self, novel_id: int, chapters: list[ChapterItem], page: str | None = None
    ) -> ChapterUpsertResult:
        """Insert new chapters and update changed ones in one transaction.

        Identity is (path, novel_id). Position is the index within `chapters`.
        """

    @abstractmethod
    async def bump_latest_chapter_at(self, novel_id: int, epoch_ms: int) -> None:
        """Raise latest_chapter_at to epoch_ms; never lowers it."""

    @abstractmethod
    async def get_latest_chapter_at(self, novel_id: int) -> int:
        """Current latest_chapter_at (epoch millis, 0 when never set)."""


class IKeyValueStore(ABC):
    """Persisted string key-value store (queue snapshot, timestamps)."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass


__all__ = ["ChapterUpsertResult", "IKeyValueStore", "ILibraryDatastore"]
