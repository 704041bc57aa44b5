"""
Exception hierarchy for canvas-chat.

Graph operations avoid raising for ordinary usage (deleting a missing node,
connecting twice, pasting an empty clipboard are all no-ops). Streaming
errors are delivered through a session's ``on_error`` callback; the classes
below give those failures a name and are raised internally by transports.
"""

from __future__ import annotations


class CanvasChatError(Exception):
    """Base class for all canvas-chat errors."""


# ---------------------------------------------------------------------------
# Graph errors
# ---------------------------------------------------------------------------


class GraphIntegrityViolation(CanvasChatError):
    """The graph reached a state with a dangling edge or a duplicate id.

    Cascading deletes and derived edge ids make this unreachable through the
    public store API, so seeing one means an internal bug.
    """


class NodeNotFoundError(CanvasChatError, KeyError):
    """No node with the given id exists in the store."""

    def __init__(self, node_id: str) -> None:
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Node not found: {self.node_id}"


class ConnectionRejected(CanvasChatError):
    """A proposed edge fails the kind-direction rule."""

    def __init__(self, source_id: str, target_id: str) -> None:
        super().__init__(f"Connection rejected: {source_id} -> {target_id}")
        self.source_id = source_id
        self.target_id = target_id


# ---------------------------------------------------------------------------
# Streaming errors
# ---------------------------------------------------------------------------


class StreamError(CanvasChatError):
    """Base class for streaming failures."""


class ChannelOpenFailure(StreamError):
    """The outbound streaming request could not be established."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StreamTerminatedByServer(StreamError):
    """The server sent an explicit ``error`` frame."""


class StreamTimeoutError(StreamError):
    """No chunk arrived within the session's idle timeout."""


class SessionStateError(StreamError):
    """A session operation was attempted from an invalid state."""
