"""
Transport abstractions for streaming chat connections.
"""

from canvas_chat.transports.base import Channel, TransportBase, TransportConfig
from canvas_chat.transports.sse import HttpxChannel, SSETransport

__all__ = [
    "Channel",
    "HttpxChannel",
    "SSETransport",
    "TransportBase",
    "TransportConfig",
]
