"""Global search session state."""

from dataclasses import dataclass, field

from novelsync.domain.dtos import NovelItem, PluginItem


@dataclass(frozen=True)
class SearchSlot:
    """Result of one plugin within a search session."""

    plugin: PluginItem
    novels: tuple[NovelItem, ...] = ()
    is_loading: bool = True
    error: str | None = None

    @property
    def has_results(self) -> bool:
        return bool(self.novels)

    @property
    def is_visible_when_filtered(self) -> bool:
        """Whether the slot survives the "hide empty results" filter."""
        return not self.is_loading and self.error is None and bool(self.novels)


@dataclass(frozen=True)
class SearchState:
    """Snapshot published to listeners after every change.

    `token` identifies the session that produced it; listeners can drop snapshots
    whose token is older than one they already rendered.
    """

    token: int
    query: str
    results: tuple[SearchSlot, ...] = field(default_factory=tuple)
    progress: float = 0.0

    @property
    def is_complete(self) -> bool:
        return self.progress >= 1.0


__all__ = ["SearchSlot", "SearchState"]
