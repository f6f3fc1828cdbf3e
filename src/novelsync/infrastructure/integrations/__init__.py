"""External integrations (HTTP)."""

from novelsync.infrastructure.integrations.http_client import SourceHttpClient

__all__ = ["SourceHttpClient"]
