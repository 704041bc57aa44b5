"""Canvas graph data models."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    """Kinds of cards that can live on the canvas.

    Values are the node ``type`` strings used in persistence records.
    """

    CHAT = "chatNode"
    CONTEXT = "contextNode"
    TEXT_BLOCK = "textBlockNode"
    EXTERNAL_DOCUMENT = "googleContextNode"

    @property
    def id_prefix(self) -> str:
        """Prefix of ids allocated for this kind, e.g. ``chat-node``."""
        return _ID_PREFIXES[self]

    @property
    def is_content(self) -> bool:
        """Whether nodes of this kind can feed context into a chat."""
        return self is not NodeKind.CHAT


_ID_PREFIXES: dict[NodeKind, str] = {
    NodeKind.CHAT: "chat-node",
    NodeKind.CONTEXT: "context-node",
    NodeKind.TEXT_BLOCK: "text-block-node",
    NodeKind.EXTERNAL_DOCUMENT: "google-context-node",
}

# Context card content types
CONTEXT_TYPES = ("ai-chat", "video", "image", "text", "website", "document")


@dataclass(frozen=True)
class Position:
    """A point on the canvas."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Position) -> Position:
        return Position(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Position) -> Position:
        return Position(self.x - other.x, self.y - other.y)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Position:
        return cls(x=float(data.get("x", 0.0)), y=float(data.get("y", 0.0)))


@dataclass
class Node:
    """A card on the canvas."""

    id: str
    kind: NodeKind
    position: Position = field(default_factory=Position)
    attributes: dict[str, Any] = field(default_factory=dict)
    selected: bool = False  # presentation only

    def clone(self) -> Node:
        """Deep copy, sharing nothing mutable with the original."""
        return Node(
            id=self.id,
            kind=self.kind,
            position=self.position,
            attributes=copy.deepcopy(self.attributes),
            selected=self.selected,
        )


def edge_id_for(source_id: str, target_id: str) -> str:
    """Derive the edge id for an ordered ``(source, target)`` pair."""
    return f"edge-{source_id}-{target_id}"


@dataclass(frozen=True)
class Edge:
    """A directed context link from a content card to a chat card."""

    id: str
    source_id: str
    target_id: str

    @classmethod
    def between(cls, source_id: str, target_id: str) -> Edge:
        """Create an edge whose id is derived from its endpoints."""
        return cls(id=edge_id_for(source_id, target_id), source_id=source_id, target_id=target_id)


@dataclass(frozen=True)
class Viewport:
    """Canvas pan/zoom, carried through for persistence only."""

    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "zoom": self.zoom}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Viewport:
        data = data or {}
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            zoom=float(data.get("zoom", 1.0)),
        )


@dataclass
class ClipboardBuffer:
    """Snapshot of copied nodes and the edges among them."""

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes
