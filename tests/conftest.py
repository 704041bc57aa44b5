"""Shared pytest fixtures for canvas-chat tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

from canvas_chat.errors import ChannelOpenFailure
from canvas_chat.graph.models import NodeKind, Position
from canvas_chat.graph.store import GraphStore
from canvas_chat.streaming.models import StreamingChatRequest
from canvas_chat.transports.base import Channel, TransportBase


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


def sse(event: str, data: dict[str, Any] | str) -> str:
    """Render one wire frame."""
    payload = data if isinstance(data, str) else json.dumps(data)
    return f"event: {event}\ndata: {payload}\n\n"


class FakeChannel(Channel):
    """Channel that replays canned chunks, optionally pausing or failing."""

    def __init__(
        self,
        chunks: list[str | bytes],
        hang: bool = False,
        error: Exception | None = None,
    ) -> None:
        self._chunks = chunks
        self._hang = hang
        self._error = error
        self.closed = False
        self.delivered = 0

    async def chunks(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            await asyncio.sleep(0)
            self.delivered += 1
            yield chunk.encode() if isinstance(chunk, str) else chunk
        if self._error is not None:
            raise self._error
        if self._hang:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class FakeTransport(TransportBase):
    """Transport returning a :class:`FakeChannel` and recording payloads."""

    def __init__(
        self,
        chunks: list[str | bytes] | None = None,
        hang: bool = False,
        error: Exception | None = None,
        open_error: Exception | None = None,
        hang_on_open: bool = False,
    ) -> None:
        super().__init__()
        self.channel = FakeChannel(chunks or [], hang=hang, error=error)
        self.open_error = open_error
        self.hang_on_open = hang_on_open
        self.payloads: list[dict[str, Any]] = []
        self.closed = False

    async def open(self, payload: dict[str, Any]) -> Channel:
        self.payloads.append(payload)
        if self.hang_on_open:
            await asyncio.Event().wait()
        if self.open_error is not None:
            raise self.open_error
        return self.channel

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def chat_request() -> StreamingChatRequest:
    return StreamingChatRequest(
        user_message="Hello",
        project_id="11111111-1111-1111-1111-111111111111",
        chat_node_id="chat-node-1",
        context_node_ids=["context-node-1"],
    )


@pytest.fixture
def refused_transport() -> FakeTransport:
    return FakeTransport(open_error=ChannelOpenFailure("HTTP 401: Unauthorized", status_code=401))


# ---------------------------------------------------------------------------
# Graph fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> GraphStore:
    return GraphStore()


@pytest.fixture
def wired_store() -> GraphStore:
    """A context card and a text block both linked into one chat card."""
    store = GraphStore()
    ctx = store.add_node(
        NodeKind.CONTEXT,
        Position(0, 0),
        {"type": "text", "content": {"title": "Notes", "content": "Buy milk"}},
    )
    block = store.add_node(
        NodeKind.TEXT_BLOCK, Position(0, 300), {"primaryText": "Remember the eggs"}
    )
    chat = store.add_node(NodeKind.CHAT, Position(500, 0))
    store.connect(ctx.id, chat.id)
    store.connect(block.id, chat.id)
    return store


@pytest.fixture
def snapshot_file(tmp_path: Path) -> Path:
    """A saved canvas with one valid and one dangling link."""
    data = {
        "version": 1,
        "nodes": [
            {
                "id": "context-node-3",
                "type": "contextNode",
                "position": {"x": 10, "y": 20},
                "data": {
                    "width": 400,
                    "height": 280,
                    "isMinimized": False,
                    "zIndex": 1,
                    "type": "website",
                    "content": {"title": "Docs", "url": "https://example.com"},
                },
            },
            {
                "id": "chat-node-2",
                "type": "chatNode",
                "position": {"x": 600, "y": 20},
                "data": {"width": 400, "height": 280, "isMinimized": False, "zIndex": 1},
            },
        ],
        "edges": [
            {
                "id": "edge-context-node-3-chat-node-2",
                "source": "context-node-3",
                "target": "chat-node-2",
                "type": "smoothstep",
                "animated": True,
            },
            {
                "id": "edge-context-node-9-chat-node-2",
                "source": "context-node-9",
                "target": "chat-node-2",
            },
        ],
        "viewport": {"x": 5, "y": 6, "zoom": 0.75},
    }
    path = tmp_path / "canvas.json"
    path.write_text(json.dumps(data))
    return path
