"""Shared fixtures: in-memory collaborators and a controllable clock.

Hey future me - the engines take clock/sleep callables, so most tests never wait for
real time. FakeClock.sleep advances the clock AND yields to the loop, which keeps
worker interleaving realistic.
"""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from novelsync.domain.dtos import NovelItem, SourceNovel, SourcePage
from novelsync.domain.ports import IContentSource, IKeyValueStore


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class InMemoryKeyValueStore(IKeyValueStore):
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.writes = 0

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.writes += 1
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class FakeSource(IContentSource):
    """Content source whose answers are plain attributes or callables."""

    def __init__(
        self,
        plugin_id: str,
        name: str | None = None,
        novel: SourceNovel | Callable[[str], Any] | None = None,
        pages: dict[str, SourcePage | Exception] | None = None,
        search: list[NovelItem] | Callable[[str], Any] | None = None,
        supports_pages: bool = False,
    ) -> None:
        self._plugin_id = plugin_id
        self._name = name or plugin_id
        self.novel = novel
        self.pages = pages or {}
        self.search = search if search is not None else []
        self._supports_pages = supports_pages
        self.fetch_novel_calls: list[str] = []
        self.fetch_page_calls: list[str] = []
        self.search_calls: list[str] = []

    @property
    def plugin_id(self) -> str:
        return self._plugin_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def supports_pages(self) -> bool:
        return self._supports_pages

    async def fetch_novel(self, path: str) -> SourceNovel:
        self.fetch_novel_calls.append(path)
        if callable(self.novel):
            result = self.novel(path)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        if self.novel is None:
            raise RuntimeError(f"No novel at {path}")
        return self.novel

    async def fetch_page(self, path: str, page: str) -> SourcePage:
        self.fetch_page_calls.append(page)
        entry = self.pages.get(page)
        if isinstance(entry, Exception):
            raise entry
        if entry is None:
            raise RuntimeError(f"Page {page} not found")
        return entry

    async def search_novels(self, query: str, page: int = 1) -> list[NovelItem]:
        self.search_calls.append(query)
        if callable(self.search):
            result = self.search(query)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        return list(self.search)

    async def popular_novels(
        self, page: int = 1, options: dict[str, Any] | None = None
    ) -> list[NovelItem]:
        return []


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def make_source() -> Callable[..., FakeSource]:
    return FakeSource
