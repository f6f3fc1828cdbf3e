"""
Registry of installed content sources.

Hey future me - this is where the engines look sources up! SyncEngine asks for the
source of each novel by plugin id, SearchEngine asks for every ENABLED source.

Usage:
    registry = SourceRegistry()
    registry.register(RoyalRoadSource(http_client))

    source = registry.get("royalroad")
    for source in registry.enabled_sources():
        ...

Not thread-safe; fine under asyncio where nothing awaits in here.
"""

from collections.abc import Iterator

from novelsync.domain.dtos import PluginItem
from novelsync.domain.entities import LOCAL_PLUGIN_ID
from novelsync.domain.ports import IContentSource


class SourceRegistry:
    """Installed content sources keyed by plugin id, each enabled or disabled."""

    def __init__(self, sources: list[IContentSource] | None = None) -> None:
        self._sources: dict[str, IContentSource] = {}
        self._disabled: set[str] = set()
        for source in sources or []:
            self.register(source)

    def register(self, source: IContentSource, enabled: bool = True) -> None:
        """Register a source, replacing any source with the same plugin id.

        Raises:
            ValueError: For the reserved local plugin id
        """
        if source.plugin_id == LOCAL_PLUGIN_ID:
            raise ValueError(f"Plugin id {LOCAL_PLUGIN_ID!r} is reserved for local novels")
        self._sources[source.plugin_id] = source
        if enabled:
            self._disabled.discard(source.plugin_id)
        else:
            self._disabled.add(source.plugin_id)

    def unregister(self, plugin_id: str) -> None:
        self._sources.pop(plugin_id, None)
        self._disabled.discard(plugin_id)

    def get(self, plugin_id: str) -> IContentSource | None:
        return self._sources.get(plugin_id)

    def require(self, plugin_id: str) -> IContentSource:
        """Get a source, raising if it is not installed.

        Raises:
            KeyError: If no source has this plugin id
        """
        source = self._sources.get(plugin_id)
        if source is None:
            raise KeyError(f"No content source registered for {plugin_id}")
        return source

    def set_enabled(self, plugin_id: str, enabled: bool) -> None:
        self.require(plugin_id)
        if enabled:
            self._disabled.discard(plugin_id)
        else:
            self._disabled.add(plugin_id)

    def is_enabled(self, plugin_id: str) -> bool:
        return plugin_id in self._sources and plugin_id not in self._disabled

    def all(self) -> Iterator[IContentSource]:
        yield from self._sources.values()

    def enabled_sources(self) -> list[IContentSource]:
        """Enabled sources, in registration order."""
        return [s for pid, s in self._sources.items() if pid not in self._disabled]

    def enabled_plugins(self) -> list[PluginItem]:
        """Descriptors of enabled sources sorted by display name (search order)."""
        return sorted(
            (source.to_item() for source in self.enabled_sources()),
            key=lambda item: item.name.casefold(),
        )

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._sources

    def clear(self) -> None:
        self._sources.clear()
        self._disabled.clear()


__all__ = ["SourceRegistry"]
