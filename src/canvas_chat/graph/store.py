"""
Authoritative canvas graph state.

The :class:`GraphStore` owns nodes, edges, the viewport and the id
allocator. Every mutation goes through one of its methods, runs to
completion synchronously, and is followed by a :data:`GRAPH_CHANGED` event
so observers (renderers, autosave) can react.

Example:
    store = GraphStore()
    ctx = store.add_node(NodeKind.CONTEXT, Position(0, 0))
    chat = store.add_node(NodeKind.CHAT, Position(100, 0))
    store.connect(ctx.id, chat.id)
    store.connected_context_ids(chat.id)  # ["context-node-1"]
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable
from typing import Any

from canvas_chat.config import CanvasConfig
from canvas_chat.errors import ConnectionRejected, GraphIntegrityViolation, NodeNotFoundError
from canvas_chat.events import GRAPH_CHANGED, EventBus, GraphChangedEvent
from canvas_chat.graph.ids import IdAllocator
from canvas_chat.graph.models import Edge, Node, NodeKind, Position, Viewport
from canvas_chat.graph.validation import can_connect
from canvas_chat.logging import get_logger

logger = get_logger("graph.store")

GraphListener = Callable[[GraphChangedEvent], Any]


def as_position(value: Position | tuple[float, float] | dict[str, Any]) -> Position:
    if isinstance(value, Position):
        return value
    if isinstance(value, dict):
        return Position.from_dict(value)
    x, y = value
    return Position(float(x), float(y))


class GraphStore:
    """Single owner of the canvas graph."""

    def __init__(
        self,
        config: CanvasConfig | None = None,
        events: EventBus | None = None,
        allocator: IdAllocator | None = None,
    ) -> None:
        self.config = config or CanvasConfig()
        self.events = events or EventBus()
        self.allocator = allocator or IdAllocator()
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self._viewport = Viewport()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: GraphListener) -> Callable[[], None]:
        """Call ``listener`` after every mutation. Returns an unsubscribe function."""
        return self.events.on(GRAPH_CHANGED, listener)

    def _notify(
        self,
        action: str,
        node_ids: Iterable[str] = (),
        edge_ids: Iterable[str] = (),
    ) -> None:
        self.events.emit(
            GRAPH_CHANGED,
            GraphChangedEvent(action=action, node_ids=list(node_ids), edge_ids=list(edge_ids)),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> list[Node]:
        """Copies of all nodes, in insertion order."""
        return [node.clone() for node in self._nodes.values()]

    @property
    def edges(self) -> list[Edge]:
        """All edges, in insertion order."""
        return list(self._edges.values())

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    def __len__(self) -> int:
        return len(self._nodes)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Node | None:
        node = self._nodes.get(node_id)
        return node.clone() if node is not None else None

    def get_edge(self, edge_id: str) -> Edge | None:
        return self._edges.get(edge_id)

    def edges_of(self, node_id: str) -> list[Edge]:
        """Edges with ``node_id`` at either end."""
        return [
            e for e in self._edges.values() if e.source_id == node_id or e.target_id == node_id
        ]

    def connected_context_ids(self, chat_node_id: str) -> list[str]:
        """Source ids of every edge into ``chat_node_id``, insertion ordered."""
        seen: dict[str, None] = {}
        for edge in self._edges.values():
            if edge.target_id == chat_node_id:
                seen.setdefault(edge.source_id, None)
        return list(seen)

    def selected_nodes(self) -> list[Node]:
        return [node.clone() for node in self._nodes.values() if node.selected]

    def check_integrity(self) -> None:
        """Raise :class:`GraphIntegrityViolation` if any edge dangles."""
        for edge in self._edges.values():
            if edge.source_id not in self._nodes or edge.target_id not in self._nodes:
                raise GraphIntegrityViolation(
                    f"Edge {edge.id} references a missing node "
                    f"({edge.source_id} -> {edge.target_id})"
                )

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def default_attributes(self, kind: NodeKind) -> dict[str, Any]:
        """Attributes every new node of ``kind`` starts with."""
        attributes: dict[str, Any] = {
            "width": self.config.default_node_width,
            "height": self.config.default_node_height,
            "isMinimized": False,
            "zIndex": 1,
        }
        if kind is NodeKind.CONTEXT:
            attributes.update({"type": "text", "content": {}})
        elif kind is NodeKind.TEXT_BLOCK:
            attributes.update({"primaryText": "", "notesText": ""})
        elif kind is NodeKind.EXTERNAL_DOCUMENT:
            attributes.update(
                {
                    "googleLink": "",
                    "documentType": None,
                    "documentTitle": None,
                    "selectedSheet": None,
                    "availableSheets": [],
                }
            )
        return attributes

    def allocate_id(self, kind: NodeKind) -> str:
        """Allocate an id guaranteed unused by any live node."""
        node_id = self.allocator.next(kind)
        while node_id in self._nodes:
            node_id = self.allocator.next(kind)
        return node_id

    def add_node(
        self,
        kind: NodeKind,
        position: Position | tuple[float, float] | dict[str, Any] = Position(),
        attributes: dict[str, Any] | None = None,
    ) -> Node:
        """Create a node of ``kind`` at ``position`` and return a copy of it."""
        kind = NodeKind(kind)
        merged = self.default_attributes(kind)
        merged.update(copy.deepcopy(attributes or {}))

        node = Node(
            id=self.allocate_id(kind),
            kind=kind,
            position=as_position(position),
            attributes=merged,
        )
        self._nodes[node.id] = node
        logger.debug("Added node %s at (%s, %s)", node.id, node.position.x, node.position.y)
        self._notify("add_node", [node.id])
        return node.clone()

    def update_node(self, node_id: str, attributes: dict[str, Any]) -> Node:
        """Merge ``attributes`` into a node's attributes."""
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        node.attributes.update(copy.deepcopy(attributes))
        self._notify("update_node", [node_id])
        return node.clone()

    def move_node(
        self,
        node_id: str,
        position: Position | tuple[float, float] | dict[str, Any],
    ) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        node.position = as_position(position)
        self._notify("move_node", [node_id])
        return node.clone()

    def delete_node(self, node_id: str) -> bool:
        """
        Remove a node and every edge touching it.

        Returns False when the node did not exist (deleting twice is safe).
        """
        if node_id not in self._nodes:
            return False
        return self._delete_nodes([node_id]) > 0

    def _delete_nodes(self, node_ids: list[str]) -> int:
        doomed = {nid for nid in node_ids if nid in self._nodes}
        if not doomed:
            return 0
        removed_edges = [
            eid
            for eid, e in self._edges.items()
            if e.source_id in doomed or e.target_id in doomed
        ]
        for eid in removed_edges:
            del self._edges[eid]
        for nid in doomed:
            del self._nodes[nid]
        logger.debug("Deleted nodes %s and %d incident edge(s)", sorted(doomed), len(removed_edges))
        self._notify("delete_node", [nid for nid in node_ids if nid in doomed], removed_edges)
        return len(doomed)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, node_ids: Iterable[str], additive: bool = False) -> list[str]:
        """Mark nodes as selected. Unknown ids are ignored."""
        wanted = set(node_ids)
        for node in self._nodes.values():
            if node.id in wanted:
                node.selected = True
            elif not additive:
                node.selected = False
        selected = [n.id for n in self._nodes.values() if n.selected]
        self._notify("select", selected)
        return selected

    def clear_selection(self) -> None:
        self.select([])

    def delete_selected(self) -> int:
        """Delete every selected node. Returns how many were removed."""
        return self._delete_nodes([n.id for n in self._nodes.values() if n.selected])

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def can_connect(self, source_id: str, target_id: str) -> bool:
        """Whether :meth:`connect` would accept this pair."""
        return can_connect(self._nodes.get(source_id), self._nodes.get(target_id))

    def connect(self, source_id: str, target_id: str, strict: bool = False) -> Edge | None:
        """
        Link a content node to a chat node.

        Returns the edge (the existing one if the pair is already linked), or
        None when the connection is rejected. With ``strict`` a rejection
        raises :class:`ConnectionRejected` instead.
        """
        if not self.can_connect(source_id, target_id):
            logger.debug("Rejected connection %s -> %s", source_id, target_id)
            if strict:
                raise ConnectionRejected(source_id, target_id)
            return None

        edge = Edge.between(source_id, target_id)
        existing = self._edges.get(edge.id)
        if existing is not None:
            return existing

        self._edges[edge.id] = edge
        logger.debug("Connected %s -> %s", source_id, target_id)
        self._notify("connect", [source_id, target_id], [edge.id])
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        """Remove an edge. Returns False when it did not exist."""
        if self._edges.pop(edge_id, None) is None:
            return False
        self._notify("delete_edge", edge_ids=[edge_id])
        return True

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def set_viewport(self, viewport: Viewport) -> None:
        self._viewport = viewport
        self._notify("viewport")

    def insert_subgraph(
        self,
        nodes: list[Node],
        edges: list[Edge],
        select: bool = False,
    ) -> None:
        """
        Insert freshly-identified nodes and the edges among them in one step.

        Used by paste. Ids must be new and every edge must point at nodes that
        exist once the insert is done; anything else is a bug in the caller.
        With ``select`` the inserted nodes replace the current selection.
        """
        incoming = {node.id for node in nodes}
        clash = incoming & self._nodes.keys()
        if clash or len(incoming) != len(nodes):
            raise GraphIntegrityViolation(f"Duplicate node ids on insert: {sorted(clash)}")
        known = incoming | self._nodes.keys()
        for edge in edges:
            if edge.source_id not in known or edge.target_id not in known:
                raise GraphIntegrityViolation(f"Edge {edge.id} would dangle")

        if select:
            for existing in self._nodes.values():
                existing.selected = False
        for node in nodes:
            node.selected = select
            self._nodes[node.id] = node
        for edge in edges:
            self._edges.setdefault(edge.id, edge)

        self._notify("paste", [n.id for n in nodes], [e.id for e in edges])

    def reset_all(self) -> None:
        """Clear the canvas and restart every id counter."""
        self._nodes.clear()
        self._edges.clear()
        self._viewport = Viewport()
        self.allocator.reset()
        logger.debug("Canvas reset")
        self._notify("reset")

    def hydrate(
        self,
        nodes: Iterable[Node],
        edges: Iterable[Edge],
        viewport: Viewport | None = None,
    ) -> list[Edge]:
        """
        Replace the whole graph with loaded state.

        Counters are re-derived from the loaded ids. Duplicate node ids keep
        their first occurrence. Edges whose endpoints are missing or whose
        kinds fail the connection rule are dropped and returned so the caller
        can report them. Edge ids are re-derived from their endpoints.
        """
        new_nodes: dict[str, Node] = {}
        for node in nodes:
            if node.id in new_nodes:
                logger.warning("Hydrate: duplicate node id %s ignored", node.id)
                continue
            new_nodes[node.id] = node.clone()

        new_edges: dict[str, Edge] = {}
        dropped: list[Edge] = []
        for record in edges:
            # Ids are re-derived from the pair, so same-pair records collapse.
            edge = Edge.between(record.source_id, record.target_id)
            if not can_connect(new_nodes.get(edge.source_id), new_nodes.get(edge.target_id)):
                logger.warning(
                    "Hydrate: dropping invalid edge %s (%s -> %s)",
                    record.id,
                    edge.source_id,
                    edge.target_id,
                )
                dropped.append(record)
                continue
            new_edges.setdefault(edge.id, edge)

        self._nodes = new_nodes
        self._edges = new_edges
        self._viewport = viewport or Viewport()
        self.allocator.rederive(self._nodes)
        logger.info("Hydrated canvas with %d node(s), %d edge(s)", len(new_nodes), len(new_edges))
        self._notify("hydrate", list(new_nodes), list(new_edges))
        return dropped
