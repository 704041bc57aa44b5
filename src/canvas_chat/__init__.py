"""
canvas-chat - a card canvas wired to a streaming AI chat.

Cards live in a :class:`GraphStore`; content cards are linked into chat
cards, and a :class:`StreamSession` streams the model's answer back token
by token.

Example:
    from canvas_chat import GraphStore, NodeKind, Position, StreamSession
    from canvas_chat.graph import build_chat_request

    store = GraphStore()
    note = store.add_node(NodeKind.CONTEXT, Position(0, 0),
                          {"content": {"title": "Notes", "content": "..."}})
    chat = store.add_node(NodeKind.CHAT, Position(500, 0))
    store.connect(note.id, chat.id)

    request = build_chat_request(store, chat.id, "Summarise", project_id="...")
    session = StreamSession.create(CanvasConfig.from_env(), on_token=print)
    await session.run(request)
"""

from canvas_chat.config import CanvasConfig
from canvas_chat.errors import (
    CanvasChatError,
    ChannelOpenFailure,
    ConnectionRejected,
    GraphIntegrityViolation,
    NodeNotFoundError,
    SessionStateError,
    StreamError,
    StreamTerminatedByServer,
    StreamTimeoutError,
)
from canvas_chat.events import (
    CLIPBOARD_COPIED,
    CLIPBOARD_PASTED,
    GRAPH_CHANGED,
    ClipboardEvent,
    EventBus,
    GraphChangedEvent,
)
from canvas_chat.graph import (
    Clipboard,
    ClipboardBuffer,
    Edge,
    GraphStore,
    IdAllocator,
    Node,
    NodeKind,
    Position,
    Viewport,
    is_valid_connection,
)
from canvas_chat.logging import get_logger, setup_logging
from canvas_chat.streaming import (
    Frame,
    FrameDecoder,
    SessionState,
    StreamingChatRequest,
    StreamSession,
)
from canvas_chat.transports import SSETransport, TransportBase, TransportConfig

__version__ = "0.1.0"

__all__ = [
    # Config
    "CanvasConfig",
    # Errors
    "CanvasChatError",
    "ChannelOpenFailure",
    "ConnectionRejected",
    "GraphIntegrityViolation",
    "NodeNotFoundError",
    "SessionStateError",
    "StreamError",
    "StreamTerminatedByServer",
    "StreamTimeoutError",
    # Events
    "CLIPBOARD_COPIED",
    "CLIPBOARD_PASTED",
    "GRAPH_CHANGED",
    "ClipboardEvent",
    "EventBus",
    "GraphChangedEvent",
    # Graph
    "Clipboard",
    "ClipboardBuffer",
    "Edge",
    "GraphStore",
    "IdAllocator",
    "Node",
    "NodeKind",
    "Position",
    "Viewport",
    "is_valid_connection",
    # Streaming
    "Frame",
    "FrameDecoder",
    "SessionState",
    "StreamSession",
    "StreamingChatRequest",
    # Transports
    "SSETransport",
    "TransportBase",
    "TransportConfig",
    # Logging
    "get_logger",
    "setup_logging",
]
