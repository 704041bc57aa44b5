"""Base transport interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from canvas_chat.config import CanvasConfig


@dataclass
class TransportConfig:
    """Configuration for a streaming connection."""

    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    auth_token: str | None = None
    timeout: float = 30.0  # connect/write timeout; reads are governed by the session

    @classmethod
    def from_canvas_config(cls, config: CanvasConfig) -> TransportConfig:
        return cls(
            url=config.stream_url,
            auth_token=config.auth_token,
            timeout=config.request_timeout,
        )


class Channel(ABC):
    """An opened response stream."""

    @abstractmethod
    def chunks(self) -> AsyncIterator[bytes]:
        """Yield raw body chunks until the server closes the stream."""
        ...

    @abstractmethod
    async def aclose(self) -> None:
        """Release the connection. Safe to call more than once."""
        ...


class TransportBase(ABC):
    """Abstract base class for streaming transports."""

    def __init__(self, config: TransportConfig | None = None) -> None:
        self.config = config or TransportConfig()

    @abstractmethod
    async def open(self, payload: dict[str, Any]) -> Channel:
        """Send the request and return the open response channel.

        Raises:
            ChannelOpenFailure: the request could not be established.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the transport and release resources."""
        ...
