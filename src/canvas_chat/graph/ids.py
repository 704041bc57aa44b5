"""Per-kind node identifier allocation."""

from __future__ import annotations

from collections.abc import Iterable

from canvas_chat.graph.models import NodeKind


class IdAllocator:
    """
    Bump allocator handing out ``<prefix>-<n>`` ids, one counter per kind.

    Counters are not persisted. After loading a saved canvas call
    :meth:`rederive` so new ids continue past the restored ones.
    """

    def __init__(self) -> None:
        self._counters: dict[NodeKind, int] = {kind: 0 for kind in NodeKind}

    def next(self, kind: NodeKind) -> str:
        """Allocate the next id for ``kind``."""
        self._counters[kind] += 1
        return f"{kind.id_prefix}-{self._counters[kind]}"

    def counter(self, kind: NodeKind) -> int:
        """Current counter value (the suffix of the last allocated id)."""
        return self._counters[kind]

    def reset(self) -> None:
        """Zero every counter."""
        for kind in self._counters:
            self._counters[kind] = 0

    def rederive(self, ids: Iterable[str]) -> None:
        """
        Reset counters to the highest numeric suffix found in ``ids``.

        Ids that do not match a known prefix, or whose suffix is not an
        integer, leave the counters alone.
        """
        self.reset()
        for node_id in ids:
            parsed = parse_node_id(node_id)
            if parsed is None:
                continue
            kind, number = parsed
            if number > self._counters[kind]:
                self._counters[kind] = number


def parse_node_id(node_id: str) -> tuple[NodeKind, int] | None:
    """Split an allocated id into ``(kind, number)``, or ``None``."""
    # Longest prefix first so "text-block-node" never matches a shorter one.
    for kind in sorted(NodeKind, key=lambda k: len(k.id_prefix), reverse=True):
        prefix = kind.id_prefix + "-"
        if node_id.startswith(prefix):
            suffix = node_id[len(prefix):]
            if suffix.isdecimal():
                return kind, int(suffix)
            return None
    return None
