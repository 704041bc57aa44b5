"""Streaming chat request and event payload models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Event type constants (the ``event:`` line of a frame)
STREAM_START = "stream_start"
MESSAGE = "message"
DATA = "data"
CONVERSATION_ID = "conversation_id"
STREAM_END = "stream_end"
ERROR = "error"

TOKEN_EVENTS = frozenset({MESSAGE, DATA})


@dataclass
class StreamingChatRequest:
    """Body of ``POST /api/chat/stream``."""

    user_message: str
    project_id: str
    chat_node_id: str
    context_node_ids: list[str] = field(default_factory=list)
    conversation_id: str | None = None  # None starts a new conversation

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "user_message": self.user_message,
            "context_node_ids": list(self.context_node_ids),
            "project_id": self.project_id,
            "chat_node_id": self.chat_node_id,
        }
        if self.conversation_id:
            payload["conversation_id"] = self.conversation_id
        return payload


@dataclass
class StreamResult:
    """Outcome of a finished session, handy for callers that await ``run``."""

    text: str
    conversation_id: str | None = None
    message_id: str | None = None
    error: str | None = None
