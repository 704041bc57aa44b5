"""
Canvas persistence records.

Converts between in-memory graph objects and the JSON records stored by the
external persistence layer:

    node: {"id", "type", "position": {"x", "y"}, "data": {...}}
    edge: {"id", "source", "target", "type": "smoothstep", "animated", "style"}

A snapshot bundles nodes, edges and the viewport. Snapshots can be written
to and read from JSON files; the remote database itself is out of scope.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from canvas_chat.config import CanvasConfig
from canvas_chat.graph.models import Edge, Node, NodeKind, Position, Viewport
from canvas_chat.graph.store import GraphStore
from canvas_chat.logging import get_logger

logger = get_logger("graph.persistence")

SNAPSHOT_VERSION = 1

EDGE_TYPE = "smoothstep"
DEFAULT_EDGE_STYLE: dict[str, Any] = {
    "stroke": "#6366f1",
    "strokeWidth": 2,
    "strokeDasharray": "5,5",
}


def _size_defaults(config: CanvasConfig | None) -> dict[str, Any]:
    config = config or CanvasConfig()
    return {
        "width": config.default_node_width,
        "height": config.default_node_height,
        "isMinimized": False,
        "zIndex": 1,
    }


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


def node_to_record(node: Node, config: CanvasConfig | None = None) -> dict[str, Any]:
    """
    Serialize a node, dropping presentation-only state.

    Missing or malformed size fields fall back to the card defaults of
    ``config``.
    """
    data = dict(node.attributes)
    for key, default in _size_defaults(config).items():
        value = data.get(key)
        if isinstance(default, bool):
            valid = isinstance(value, bool)
        else:
            valid = isinstance(value, (int, float)) and not isinstance(value, bool)
        if not valid:
            data[key] = default
    return {
        "id": node.id,
        "type": node.kind.value,
        "position": node.position.to_dict(),
        "data": json.loads(json.dumps(data)),
    }


def node_from_record(record: dict[str, Any]) -> Node:
    """Parse a node record. Raises ``ValueError`` for a malformed record."""
    if not isinstance(record, dict):
        raise ValueError(f"Node record must be an object, got {type(record).__name__}")
    if not record.get("id"):
        raise ValueError(f"Node record without an id (type {record.get('type')!r})")
    try:
        kind = NodeKind(record["type"])
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unknown node type in record {record.get('id')!r}") from exc

    data = record.get("data") or {}
    position = record.get("position") or {}
    if not isinstance(data, dict) or not isinstance(position, dict):
        raise ValueError(f"Malformed data or position in node record {record['id']!r}")
    data = dict(data)
    data.pop("id", None)  # older records duplicate the id inside data
    return Node(
        id=str(record["id"]),
        kind=kind,
        position=Position.from_dict(position),
        attributes=data,
    )


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


def edge_to_record(edge: Edge, animated: bool = True) -> dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.source_id,
        "target": edge.target_id,
        "type": EDGE_TYPE,
        "animated": animated,
        "style": dict(DEFAULT_EDGE_STYLE),
    }


def edge_from_record(record: dict[str, Any]) -> Edge:
    if not isinstance(record, dict):
        raise ValueError(f"Edge record must be an object, got {type(record).__name__}")
    # Accept both the wire names and the model names
    source = record.get("source", record.get("sourceId"))
    target = record.get("target", record.get("targetId"))
    if source is None or target is None:
        raise ValueError(f"Edge record {record.get('id')!r} is missing an endpoint")
    edge_id = record.get("id") or Edge.between(source, target).id
    return Edge(id=str(edge_id), source_id=str(source), target_id=str(target))


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


def dump_snapshot(store: GraphStore) -> dict[str, Any]:
    """Serialize the whole store."""
    return {
        "version": SNAPSHOT_VERSION,
        "nodes": [node_to_record(n, store.config) for n in store.nodes],
        "edges": [edge_to_record(e) for e in store.edges],
        "viewport": store.viewport.to_dict(),
    }


def load_snapshot(store: GraphStore, snapshot: dict[str, Any]) -> list[Edge]:
    """
    Hydrate ``store`` from a snapshot dictionary.

    Node records with an unknown type are skipped with a warning. Returns the
    edges the store refused (see :meth:`GraphStore.hydrate`).
    """
    nodes: list[Node] = []
    for record in snapshot.get("nodes") or []:
        try:
            nodes.append(node_from_record(record))
        except ValueError as exc:
            logger.warning("Skipping node record: %s", exc)

    edges: list[Edge] = []
    for record in snapshot.get("edges") or []:
        try:
            edges.append(edge_from_record(record))
        except ValueError as exc:
            logger.warning("Skipping edge record: %s", exc)

    return store.hydrate(nodes, edges, Viewport.from_dict(snapshot.get("viewport")))


def save_snapshot(store: GraphStore, path: Path) -> None:
    """Write the store to ``path`` as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(dump_snapshot(store), indent=2))
    logger.debug("Saved canvas snapshot to %s", path)


def read_snapshot(store: GraphStore, path: Path) -> list[Edge]:
    """Hydrate ``store`` from a JSON snapshot file."""
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a canvas snapshot")
    return load_snapshot(store, data)
