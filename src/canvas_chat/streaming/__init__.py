"""
Streaming chat client: frame decoding and session lifecycle.
"""

from canvas_chat.streaming.decoder import Frame, FrameDecoder, parse_frame
from canvas_chat.streaming.models import (
    CONVERSATION_ID,
    DATA,
    ERROR,
    MESSAGE,
    STREAM_END,
    STREAM_START,
    StreamingChatRequest,
    StreamResult,
)
from canvas_chat.streaming.session import (
    TERMINAL_STATES,
    SessionState,
    StreamSession,
)

__all__ = [
    "CONVERSATION_ID",
    "DATA",
    "ERROR",
    "Frame",
    "FrameDecoder",
    "MESSAGE",
    "STREAM_END",
    "STREAM_START",
    "SessionState",
    "StreamResult",
    "StreamSession",
    "StreamingChatRequest",
    "TERMINAL_STATES",
    "parse_frame",
]
