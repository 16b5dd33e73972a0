"""HTTP client wrapper."""

from typing import Any

import httpx

from pqcscan.core.config import get_settings


class HTTPClient:
    """Async HTTP client wrapper."""

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = get_settings()
        self.timeout = timeout if timeout is not None else self.settings.http_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def open(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("Client not initialized. Use async with.")
        return self._client

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make GET request."""
        return await self._require_client().get(url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make POST request."""
        return await self._require_client().post(url, **kwargs)

    async def head(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make HEAD request."""
        return await self._require_client().head(url, **kwargs)
