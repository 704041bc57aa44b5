"""
Canvas graph: nodes, context links, id allocation, copy/paste and persistence.
"""

from canvas_chat.graph.clipboard import Clipboard
from canvas_chat.graph.context import build_chat_request, collect_context_texts, describe_node
from canvas_chat.graph.ids import IdAllocator, parse_node_id
from canvas_chat.graph.models import (
    CONTEXT_TYPES,
    ClipboardBuffer,
    Edge,
    Node,
    NodeKind,
    Position,
    Viewport,
    edge_id_for,
)
from canvas_chat.graph.persistence import (
    dump_snapshot,
    edge_from_record,
    edge_to_record,
    load_snapshot,
    node_from_record,
    node_to_record,
    read_snapshot,
    save_snapshot,
)
from canvas_chat.graph.store import GraphStore
from canvas_chat.graph.validation import CONTENT_KINDS, can_connect, is_valid_connection

__all__ = [
    "CONTENT_KINDS",
    "CONTEXT_TYPES",
    "Clipboard",
    "ClipboardBuffer",
    "Edge",
    "GraphStore",
    "IdAllocator",
    "Node",
    "NodeKind",
    "Position",
    "Viewport",
    "build_chat_request",
    "can_connect",
    "collect_context_texts",
    "describe_node",
    "dump_snapshot",
    "edge_from_record",
    "edge_id_for",
    "edge_to_record",
    "is_valid_connection",
    "load_snapshot",
    "node_from_record",
    "node_to_record",
    "parse_node_id",
    "read_snapshot",
    "save_snapshot",
]
