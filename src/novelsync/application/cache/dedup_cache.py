"""TTL map of recent sync successes."""

import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any


@dataclass
class DedupEntry:
    """Last successful refresh of one key."""

    succeeded_at: float

    def is_fresh(self, now: float, window: float) -> bool:
        return now - self.succeeded_at < window


class DedupCache:
    """Remembers which novels were refreshed recently so a new run can skip them.

    Owned by ONE SyncEngine instance and never persisted: a process restart forgets
    everything, which just means the next run refreshes everything once.
    """

    # Hey future me, no asyncio.Lock here unlike InMemoryCache! Every method is plain sync
    # code without awaits, so under asyncio nothing can interleave inside a call. The clock
    # is injectable so tests can jump forward six minutes without sleeping.
    def __init__(
        self, window_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._window = window_seconds
        self._clock = clock
        self._entries: dict[Hashable, DedupEntry] = {}

    @property
    def window_seconds(self) -> float:
        return self._window

    def is_fresh(self, key: Hashable) -> bool:
        """True when `key` succeeded within the window."""
        entry = self._entries.get(key)
        return entry is not None and entry.is_fresh(self._clock(), self._window)

    def mark(self, key: Hashable) -> None:
        """Record a success for `key` at the current clock time."""
        self._entries[key] = DedupEntry(succeeded_at=self._clock())

    def prune(self) -> int:
        """Drop entries older than the window.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        stale = [
            key
            for key, entry in self._entries.items()
            if not entry.is_fresh(now, self._window)
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        now = self._clock()
        fresh = sum(1 for entry in self._entries.values() if entry.is_fresh(now, self._window))
        return {
            "total_entries": len(self._entries),
            "fresh_entries": fresh,
            "window_seconds": self._window,
        }
