"""Utilities for rendering nodes in the CLI."""

from __future__ import annotations

from typing import Dict, List

from nodegraph.db.models import Node, NodeId


def render_tree(nodes: List[Node]) -> str:
    """Render the ``parent_id`` hierarchy as an ASCII forest.

    Nodes without a parent (or whose parent is not in ``nodes``) are roots.
    Outgoing connections are shown after the title as ``-> a, b``.

    Args:
        nodes: Nodes as returned by :func:`~nodegraph.db.nodes.load_nodes`.

    Returns:
        String representation of the forest, one node per line.
    """
    node_map = {n.id: n for n in nodes}
    children: Dict[NodeId, List[Node]] = {}
    roots: List[Node] = []
    for n in nodes:
        if n.parent_id is not None and n.parent_id in node_map:
            children.setdefault(n.parent_id, []).append(n)
        else:
            roots.append(n)

    lines: List[str] = []
    visited = set()

    def _render_node(node: Node, prefix: str, is_last: bool, is_root: bool) -> None:
        if node.id in visited:
            return
        visited.add(node.id)

        label = f"{_get_icon(node.type)} {node.title} [{node.id}]"
        if node.connections:
            label += " -> " + ", ".join(str(c) for c in node.connections)

        if is_root:
            lines.append(label)
            child_prefix = ""
        else:
            connector = "└── " if is_last else "├── "
            lines.append(f"{prefix}{connector}{label}")
            child_prefix = prefix + ("    " if is_last else "│   ")

        kids = sorted(children.get(node.id, []), key=lambda c: c.title)
        for i, child in enumerate(kids):
            _render_node(child, child_prefix, i == len(kids) - 1, False)

    for root in sorted(roots, key=lambda r: r.title):
        _render_node(root, "", True, True)
    # Parent cycles have no root; show them from their first member.
    for n in nodes:
        if n.id not in visited:
            _render_node(n, "", True, True)

    return "\n".join(lines)


def _get_icon(node_type: str) -> str:
    icons = {
        "normal": "●",
        "super": "◆",
        "image": "🖼️",
        "audio": "🔊",
        "document": "📄",
        "video": "🎬",
    }
    return icons.get(node_type, "○")
