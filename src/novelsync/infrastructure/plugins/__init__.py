"""
Content source plugin infrastructure.

Concrete sources live outside this package (one per website); they implement
IContentSource, usually on top of SourceHttpClient, and get registered here.
"""

from novelsync.infrastructure.plugins.registry import SourceRegistry

__all__ = ["SourceRegistry"]
