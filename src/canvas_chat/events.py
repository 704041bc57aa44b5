"""
Event system for canvas-chat.

The graph store publishes a :class:`GraphChangedEvent` after every mutation
and the clipboard publishes copy/paste confirmations. Renderers, autosave
hooks and tests subscribe to an :class:`EventBus` instead of polling.

Example:
    from canvas_chat.events import GRAPH_CHANGED, EventBus, GraphChangedEvent

    bus = EventBus()

    unsubscribe = bus.on(GRAPH_CHANGED, lambda event: print(event.action))
    bus.emit(GRAPH_CHANGED, GraphChangedEvent(action="add_node"))
    unsubscribe()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from canvas_chat.logging import get_logger

logger = get_logger("events")


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

GRAPH_CHANGED = "graph_changed"
CLIPBOARD_COPIED = "clipboard_copied"
CLIPBOARD_PASTED = "clipboard_pasted"


@dataclass
class GraphChangedEvent:
    """Emitted after the graph store applied a mutation."""

    action: str
    """One of ``add_node``, ``update_node``, ``move_node``, ``delete_node``,
    ``connect``, ``delete_edge``, ``select``, ``viewport``, ``reset``,
    ``hydrate``, ``paste``."""

    node_ids: list[str] = field(default_factory=list)
    edge_ids: list[str] = field(default_factory=list)


@dataclass
class ClipboardEvent:
    """Confirmation signal for copy and paste."""

    node_count: int
    edge_count: int
    node_ids: list[str] = field(default_factory=list)  # pasted ids (paste only)


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------

EventHandler = Callable[[Any], Any]


class EventBus:
    """
    A small synchronous publish/subscribe bus.

    Handlers run in registration order. A handler that raises is logged and
    skipped; it never interrupts the publisher.

    Usage:
        bus = EventBus()
        unsub = bus.on("graph_changed", handler)
        unsub()  # remove handler
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Register a handler. Returns a function that unregisters it."""
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            self.off(event, handler)

        return unsubscribe

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, data: Any = None) -> None:
        """
        Call every handler registered for ``event`` with ``data``.

        Graph mutations are synchronous, so coroutine handlers are not
        awaited; they are skipped with a warning.
        """
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(data)
            except Exception as e:
                logger.warning(
                    "Event handler error (event=%s, handler=%s): %s",
                    event,
                    getattr(handler, "__qualname__", handler),
                    e,
                )
                continue
            if asyncio.iscoroutine(result):
                result.close()
                logger.warning("Async handler skipped (event=%s)", event)
