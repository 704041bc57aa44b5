"""
Context collection for chat cards.

Walks the edges into a chat node and renders each connected content card as
a one-line description that can be shown to the user or sent to the model.
"""

from __future__ import annotations

import json
from typing import Any

from canvas_chat.graph.models import Node, NodeKind
from canvas_chat.graph.store import GraphStore
from canvas_chat.streaming.models import StreamingChatRequest


def _context_card_text(context_type: str, content: dict[str, Any]) -> str:
    if context_type == "text":
        return f"{content.get('title') or 'Text Note'}: {content.get('content') or ''}"
    if context_type == "video":
        return f"Video: {content.get('title') or 'Video'} ({content.get('url') or 'No URL'})"
    if context_type == "image":
        return (
            f"Image: {content.get('alt') or 'Image'} - "
            f"{content.get('caption') or 'No description'}"
        )
    if context_type == "website":
        return (
            f"Website: {content.get('title') or 'Website'} "
            f"({content.get('url') or 'No URL'}) - "
            f"{content.get('description') or 'No description'}"
        )
    if context_type == "document":
        return (
            f"Document: {content.get('name') or 'Document'} "
            f"({content.get('type') or 'Unknown type'})"
        )
    return f"{context_type}: {json.dumps(content, sort_keys=True)}"


def describe_node(node: Node) -> str:
    """Render a content node as text. Returns "" when there is nothing to say."""
    attrs = node.attributes
    if node.kind is NodeKind.CONTEXT:
        content = attrs.get("content")
        if not content:
            return ""
        return _context_card_text(attrs.get("type", "text"), content).strip()
    if node.kind is NodeKind.TEXT_BLOCK:
        parts = [attrs.get("primaryText") or "", attrs.get("notesText") or ""]
        return "\n".join(p for p in parts if p.strip()).strip()
    if node.kind is NodeKind.EXTERNAL_DOCUMENT:
        link = attrs.get("googleLink") or ""
        if not link:
            return ""
        title = attrs.get("documentTitle") or "Google document"
        sheet = attrs.get("selectedSheet")
        suffix = f" [{sheet}]" if sheet else ""
        return f"{title}{suffix} ({link})"
    return ""


def collect_context_texts(store: GraphStore, chat_node_id: str) -> list[str]:
    """Descriptions of every content card linked into ``chat_node_id``."""
    texts: list[str] = []
    for source_id in store.connected_context_ids(chat_node_id):
        node = store.get_node(source_id)
        if node is None:
            continue
        text = describe_node(node)
        if text:
            texts.append(text)
    return texts


def build_chat_request(
    store: GraphStore,
    chat_node_id: str,
    user_message: str,
    project_id: str,
    conversation_id: str | None = None,
) -> StreamingChatRequest:
    """Assemble the outbound request for a message typed into a chat card."""
    return StreamingChatRequest(
        user_message=user_message,
        project_id=project_id,
        chat_node_id=chat_node_id,
        context_node_ids=store.connected_context_ids(chat_node_id),
        conversation_id=conversation_id,
    )
