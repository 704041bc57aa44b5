"""
Copy and paste of canvas subgraphs.

Copy snapshots a set of nodes plus the edges running between them (the
induced subgraph). Paste re-creates that snapshot with fresh ids, so it can
be pasted any number of times without collisions. Links to nodes outside
the copied set are not carried along.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from canvas_chat.events import CLIPBOARD_COPIED, CLIPBOARD_PASTED, ClipboardEvent
from canvas_chat.graph.models import ClipboardBuffer, Edge, Node, Position
from canvas_chat.graph.store import GraphStore, as_position
from canvas_chat.logging import get_logger

logger = get_logger("graph.clipboard")


class Clipboard:
    """Clipboard bound to one :class:`GraphStore`."""

    def __init__(self, store: GraphStore) -> None:
        self.store = store
        self._buffer = ClipboardBuffer()

    @property
    def is_empty(self) -> bool:
        return self._buffer.is_empty

    @property
    def buffer(self) -> ClipboardBuffer:
        """A copy of the current buffer."""
        return ClipboardBuffer(
            nodes=[node.clone() for node in self._buffer.nodes],
            edges=list(self._buffer.edges),
        )

    def clear(self) -> None:
        self._buffer = ClipboardBuffer()

    def copy(self, node_ids: Iterable[str]) -> int:
        """
        Copy nodes and their induced edges. Returns the number of nodes copied.

        Unknown ids are skipped. If nothing is left to copy the previous
        buffer is kept.
        """
        wanted = list(dict.fromkeys(node_ids))
        nodes = [n for n in (self.store.get_node(nid) for nid in wanted) if n is not None]
        if not nodes:
            return 0

        members = {node.id for node in nodes}
        edges = [
            e for e in self.store.edges if e.source_id in members and e.target_id in members
        ]
        # get_node already hands out deep copies
        self._buffer = ClipboardBuffer(nodes=nodes, edges=edges)

        logger.info("Copied %d node(s), %d edge(s)", len(nodes), len(edges))
        self.store.events.emit(
            CLIPBOARD_COPIED, ClipboardEvent(node_count=len(nodes), edge_count=len(edges))
        )
        return len(nodes)

    def copy_selected(self) -> int:
        return self.copy(node.id for node in self.store.selected_nodes())

    def paste(
        self,
        target_position: Position | tuple[float, float] | dict[str, Any],
    ) -> list[Node]:
        """
        Paste the buffer so its first node lands on ``target_position``.

        Returns the new nodes (empty when the clipboard is empty). Pasted
        nodes arrive deselected.
        """
        if self._buffer.is_empty:
            return []

        offset = as_position(target_position) - self._buffer.nodes[0].position

        id_map: dict[str, str] = {}
        pasted: list[Node] = []
        for original in self._buffer.nodes:
            clone = original.clone()
            clone.id = self.store.allocate_id(original.kind)
            clone.position = original.position + offset
            clone.selected = False
            id_map[original.id] = clone.id
            pasted.append(clone)

        new_edges = [
            Edge.between(id_map[e.source_id], id_map[e.target_id]) for e in self._buffer.edges
        ]
        self.store.insert_subgraph(pasted, new_edges)

        logger.info("Pasted %d node(s), %d edge(s)", len(pasted), len(new_edges))
        self.store.events.emit(
            CLIPBOARD_PASTED,
            ClipboardEvent(
                node_count=len(pasted),
                edge_count=len(new_edges),
                node_ids=[n.id for n in pasted],
            ),
        )
        return [node.clone() for node in pasted]
