"""
Standard Data Transfer Objects for content sources.

Hey future me - these DTOs are the lingua franca between ALL content source plugins!
Every plugin converts whatever it scraped into these shapes. The engines never see raw
HTML or JSON from a site.

Flow: Plugin response -> DTO -> SyncEngine/SearchEngine -> Datastore
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChapterItem:
    """One chapter as listed by a source.

    `page` is only set by sources that paginate their chapter list; the sync engine
    falls back to the page being fetched (or "1").
    """

    name: str
    path: str
    release_time: str | None = None
    chapter_number: float | None = None
    page: str | None = None


@dataclass(frozen=True)
class SourceNovel:
    """Novel detail returned by IContentSource.fetch_novel()."""

    name: str
    path: str
    cover: str | None = None
    summary: str | None = None
    author: str | None = None
    artist: str | None = None
    genres: str | None = None
    status: str | None = None
    total_pages: int | None = None
    rating: float | None = None
    word_count: int | None = None
    chapters: list[ChapterItem] = field(default_factory=list)


@dataclass(frozen=True)
class SourcePage:
    """One page of a paginated chapter list."""

    chapters: list[ChapterItem] = field(default_factory=list)


@dataclass(frozen=True)
class NovelItem:
    """Lightweight novel entry from search or popular listings."""

    name: str
    path: str
    cover: str | None = None


@dataclass(frozen=True)
class PluginItem:
    """Descriptor of an installed content source (what the search UI lists)."""

    id: str
    name: str
    lang: str | None = None
    version: str | None = None


__all__ = [
    "ChapterItem",
    "NovelItem",
    "PluginItem",
    "SourceNovel",
    "SourcePage",
]
