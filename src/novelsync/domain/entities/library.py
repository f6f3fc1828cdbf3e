"""Library sync entities."""

from dataclasses import dataclass, field

# Synthetic source of novels imported from local files. Never synced.
LOCAL_PLUGIN_ID = "local"


@dataclass(frozen=True)
class SyncTarget:
    """A library novel as seen at the start of a sync run.

    Snapshot only: the engine never mutates it, all changes go through the datastore.
    """

    novel_id: int
    plugin_id: str
    path: str
    name: str
    total_pages: int = 0


@dataclass
class SyncReport:
    """Outcome of one SyncEngine.run().

    Every candidate ends in exactly one bucket, so
    succeeded + failed + skipped == total once the run finished.
    """

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    # novel name -> last error message
    failures: dict[str, str] = field(default_factory=dict)
    inserted_chapters: int = 0
    updated_chapters: int = 0

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed + self.skipped


__all__ = ["LOCAL_PLUGIN_ID", "SyncReport", "SyncTarget"]
