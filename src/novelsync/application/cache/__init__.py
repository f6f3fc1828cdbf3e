"""Caching layer - in-process caches used by the engines."""

from novelsync.application.cache.dedup_cache import DedupCache

__all__ = ["DedupCache"]
