"""Node construction helpers shared by the view builders."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ...models.vault import NotePreview
from ...models.view import CanvasNode, Position
from ..identity import basename
from ..layout import LayoutNode, estimate_node_size
from ..note_preview import title_for_file


@dataclass(frozen=True)
class PrimaryNode:
    """Node produced for one query result, and whether it had no prior node."""

    node: CanvasNode
    is_new: bool


def unique_ids(ids: Iterable[str], limit: Optional[int] = None) -> List[str]:
    """Drop empty and repeated ids, keeping first occurrence order."""
    seen: Dict[str, None] = {}
    for item_id in ids:
        if item_id and item_id not in seen:
            seen[item_id] = None
    result = list(seen)
    return result[:limit] if limit is not None else result


def _note_title(
    note_id: str,
    preview: Optional[NotePreview],
    fallback_title: Optional[str],
    prev_node: Optional[CanvasNode] = None,
) -> str:
    if preview is not None and preview.title:
        return preview.title
    if fallback_title:
        return fallback_title
    if prev_node is not None:
        prev_title = prev_node.data.get("title")
        if isinstance(prev_title, str) and prev_title:
            return prev_title
    return title_for_file(note_id)


def build_primary_note_node(
    note_id: str,
    prev_node: Optional[CanvasNode],
    preview: Optional[NotePreview],
    fallback_title: Optional[str] = None,
) -> PrimaryNode:
    """
    Refresh or create the card of a note.

    An existing note node keeps its position, parent, extent and style; only
    ``data.title`` and ``data.content`` are rewritten. An existing node of
    another type is left untouched.
    """
    content = preview.content if preview is not None else ""
    if prev_node is not None:
        if prev_node.type != "note":
            return PrimaryNode(node=prev_node, is_new=False)
        data = dict(prev_node.data)
        data["title"] = _note_title(note_id, preview, fallback_title, prev_node)
        data["content"] = content
        return PrimaryNode(node=prev_node.model_copy(update={"data": data}), is_new=False)

    return PrimaryNode(
        node=CanvasNode(
            id=note_id,
            type="note",
            position=Position(x=0, y=0),
            data={
                "noteId": note_id,
                "title": _note_title(note_id, preview, fallback_title),
                "content": content,
            },
        ),
        is_new=True,
    )


def build_primary_file_node(rel_path: str, prev_node: Optional[CanvasNode]) -> PrimaryNode:
    """Card for a non-Markdown file; existing nodes are kept as they are."""
    if prev_node is not None:
        return PrimaryNode(node=prev_node, is_new=False)
    return PrimaryNode(
        node=CanvasNode(
            id=rel_path,
            type="file",
            position=Position(x=0, y=0),
            data={"path": rel_path, "title": basename(rel_path)},
        ),
        is_new=True,
    )


def as_layout_node(node: CanvasNode) -> LayoutNode:
    return LayoutNode(id=node.id, type=node.type, data=node.data, style=node.style)


def absolute_position(node: CanvasNode, by_id: Dict[str, CanvasNode]) -> Tuple[float, float]:
    """Canvas position of a node, adding its parent's offset when it has one."""
    x, y = node.position.x, node.position.y
    parent = by_id.get(node.parent_node) if node.parent_node else None
    if parent is not None:
        x += parent.position.x
        y += parent.position.y
    return x, y


def max_right_for_nodes(nodes: Sequence[CanvasNode]) -> float:
    """Rightmost estimated edge over ``nodes`` (0 for none)."""
    by_id = {node.id: node for node in nodes}
    max_right = 0.0
    for node in nodes:
        x, _ = absolute_position(node, by_id)
        width, _ = estimate_node_size(as_layout_node(node))
        max_right = max(max_right, x + width)
    return max_right


__all__ = [
    "PrimaryNode",
    "unique_ids",
    "build_primary_note_node",
    "build_primary_file_node",
    "as_layout_node",
    "absolute_position",
    "max_right_for_nodes",
]
