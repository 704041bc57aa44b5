"""
Connection rules for context links.

These checks are pure so the same rule can drive live feedback while a link
is being dragged and the programmatic :meth:`GraphStore.connect`.
"""

from __future__ import annotations

from canvas_chat.graph.models import Node, NodeKind

CONTENT_KINDS = frozenset(
    {NodeKind.CONTEXT, NodeKind.TEXT_BLOCK, NodeKind.EXTERNAL_DOCUMENT}
)


def is_valid_connection(source_kind: NodeKind, target_kind: NodeKind) -> bool:
    """True iff a content card may feed the target, which must be a chat."""
    return source_kind in CONTENT_KINDS and target_kind is NodeKind.CHAT


def can_connect(source: Node | None, target: Node | None) -> bool:
    """Validate a concrete pair of nodes.

    Missing endpoints and self-loops are always rejected.
    """
    if source is None or target is None:
        return False
    if source.id == target.id:
        return False
    return is_valid_connection(source.kind, target.kind)
