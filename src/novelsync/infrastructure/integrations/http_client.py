"""HTTP client for content source plugins.

Hey future me - every plugin talks to its website through one of these! The client owns
the fixed per-call deadline (settings.network.request_timeout) and turns httpx failures
into our error taxonomy, so the sync engine's classify_error() sees NetworkError,
ParseError or PluginError instead of raw httpx exceptions.

Usage:
    client = SourceHttpClient("royalroad", settings.network, base_url="https://www.royalroad.com")
    html = await client.get_text("/fiction/21220")
    await client.close()
"""

import json
import logging
from typing import Any

import httpx

from novelsync.config import NetworkSettings
from novelsync.domain.exceptions import NetworkError, ParseError, PluginError

logger = logging.getLogger(__name__)


class SourceHttpClient:
    """Lazily-created httpx.AsyncClient bound to one plugin id."""

    def __init__(
        self,
        plugin_id: str,
        settings: NetworkSettings,
        base_url: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.plugin_id = plugin_id
        self.settings = settings
        self._base_url = base_url
        self._headers = dict(headers or {})
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"User-Agent": self.settings.user_agent, **self._headers},
                timeout=httpx.Timeout(self.settings.request_timeout),
                follow_redirects=True,
            )
        return self._client

    # Close the client or leak connections. The lifecycle does this at shutdown.
    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and return the successful response.

        Raises:
            NetworkError: On timeout or transport failure
            PluginError: On a non-success HTTP status
        """
        client = await self._get_client()
        timeout_ms = int(self.settings.request_timeout * 1000)
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError(f"timeout of {timeout_ms}ms exceeded") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Network request failed: {e}") from e

        if not response.is_success:
            logger.debug(
                "[%s] %s %s -> HTTP %d", self.plugin_id, method, response.url, response.status_code
            )
            raise PluginError(
                f"HTTP {response.status_code} for {response.url}", plugin_id=self.plugin_id
            )
        return response

    async def get_text(self, url: str, **kwargs: Any) -> str:
        response = await self.request("GET", url, **kwargs)
        return response.text

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        response = await self.request("GET", url, **kwargs)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Invalid JSON from {response.url}: {e}") from e

    async def post_json(self, url: str, payload: Any = None, **kwargs: Any) -> Any:
        response = await self.request("POST", url, json=payload, **kwargs)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Invalid JSON from {response.url}: {e}") from e

    async def __aenter__(self) -> "SourceHttpClient":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
