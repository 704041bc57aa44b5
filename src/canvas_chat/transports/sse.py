"""SSE transport over httpx."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx

from canvas_chat.errors import ChannelOpenFailure, StreamError
from canvas_chat.logging import get_logger
from canvas_chat.transports.base import Channel, TransportBase, TransportConfig

logger = get_logger("transports.sse")


class HttpxChannel(Channel):
    """Wraps a streaming :class:`httpx.Response`."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self._closed = False

    async def chunks(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            raise StreamError(f"Stream read failed: {exc}") from exc

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.response.aclose()


class SSETransport(TransportBase):
    """
    POSTs a JSON request and streams the ``text/event-stream`` response.

    Pass an existing ``client`` to share a connection pool (or to inject an
    ``httpx.MockTransport`` in tests); otherwise the transport owns one.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config)
        self._client = client
        self._owns_client = client is None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            **self.config.headers,
        }
        if self.config.auth_token:
            headers["Authorization"] = f"Bearer {self.config.auth_token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                # Streams may idle for a long time; the session enforces its own limit.
                timeout=httpx.Timeout(self.config.timeout, read=None),
            )
        return self._client

    async def open(self, payload: dict[str, Any]) -> Channel:
        if not self.config.url:
            raise ChannelOpenFailure("No stream URL configured")
        if not self.config.auth_token and "Authorization" not in self.config.headers:
            raise ChannelOpenFailure("No authentication token found")

        client = self._get_client()
        request = client.build_request(
            "POST", self.config.url, json=payload, headers=self._headers()
        )
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise ChannelOpenFailure(f"Could not connect to {self.config.url}: {exc}") from exc

        if response.is_error:
            await response.aclose()
            raise ChannelOpenFailure(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        logger.debug("Opened stream %s (%s)", self.config.url, response.status_code)
        return HttpxChannel(response)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
