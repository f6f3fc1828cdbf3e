"""
Content source plugin interface.

Hey future me - every reading site is ONE IContentSource! Methods always return the
DTOs from novelsync.domain.dtos, never raw HTML/JSON. A call may fail with anything
(network, parser, site change); the engines catch it and attribute it to plugin_id,
so implementations don't need to wrap their errors, but raising PluginError with a
good message helps the user.

Checklist for a new source:
1. Implement IContentSource
2. Convert scraped data into DTOs inside the plugin
3. Use SourceHttpClient for HTTP so the fixed request deadline applies
4. Register it in SourceRegistry
"""

from abc import ABC, abstractmethod
from typing import Any

from novelsync.domain.dtos import NovelItem, PluginItem, SourceNovel, SourcePage


class IContentSource(ABC):
    """One remote reading source."""

    @property
    @abstractmethod
    def plugin_id(self) -> str:
        """Stable identifier stored on every novel of this source."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name (search results are ordered by it)."""

    @property
    def lang(self) -> str | None:
        return None

    @property
    def version(self) -> str | None:
        return None

    @property
    def supports_pages(self) -> bool:
        """Whether the chapter list is paginated and fetch_page() is implemented."""
        return False

    def to_item(self) -> PluginItem:
        return PluginItem(id=self.plugin_id, name=self.name, lang=self.lang, version=self.version)

    @abstractmethod
    async def fetch_novel(self, path: str) -> SourceNovel:
        """Fetch novel detail plus its (first page of) chapters."""

    async def fetch_page(self, path: str, page: str) -> SourcePage:
        """Fetch one page of a paginated chapter list."""
        raise NotImplementedError(f"{self.plugin_id} does not paginate chapters")

    @abstractmethod
    async def search_novels(self, query: str, page: int = 1) -> list[NovelItem]:
        """Search the source."""

    @abstractmethod
    async def popular_novels(
        self, page: int = 1, options: dict[str, Any] | None = None
    ) -> list[NovelItem]:
        """List popular novels (options carry source-specific filters)."""


__all__ = ["IContentSource"]
