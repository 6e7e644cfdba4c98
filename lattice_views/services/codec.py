"""Load, sanitize and persist view documents."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..models.view import SCHEMA_VERSION, CanvasEdge, CanvasNode, ViewDocument, ViewRef
from .identity import view_doc_path
from .interfaces import ITextStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedViewDoc:
    """A view document (or None when absent) and where it lives."""

    doc: Optional[ViewDocument]
    path: str


def sanitize_node(node: CanvasNode) -> Dict[str, Any]:
    """Strip a node down to the fields the schema recognizes."""
    payload: Dict[str, Any] = {
        "id": node.id,
        "type": node.type,
        "position": {"x": node.position.x, "y": node.position.y},
        "data": dict(node.data or {}),
    }
    if node.parent_node:
        payload["parentNode"] = node.parent_node
    if node.extent is not None:
        payload["extent"] = node.extent
    if node.style is not None:
        payload["style"] = node.style
    return payload


def sanitize_edge(edge: CanvasEdge) -> Dict[str, Any]:
    """Strip an edge down to the fields the schema recognizes."""
    payload: Dict[str, Any] = {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
    }
    if edge.type is not None:
        payload["type"] = edge.type
    payload["data"] = dict(edge.data or {})
    if edge.label is not None:
        payload["label"] = edge.label
    if edge.style is not None:
        payload["style"] = edge.style
    return payload


def sanitize_nodes(nodes: Sequence[CanvasNode]) -> List[Dict[str, Any]]:
    return [sanitize_node(node) for node in nodes]


def sanitize_edges(edges: Sequence[CanvasEdge]) -> List[Dict[str, Any]]:
    return [sanitize_edge(edge) for edge in edges]


def has_view_doc_changed(
    prev: Optional[ViewDocument],
    next_nodes: Sequence[CanvasNode],
    next_edges: Sequence[CanvasEdge],
) -> bool:
    """True when there was no prior document or its sanitized graph differs."""
    if prev is None:
        return True
    return sanitize_nodes(prev.nodes) != sanitize_nodes(next_nodes) or sanitize_edges(
        prev.edges
    ) != sanitize_edges(next_edges)


def dump_view_doc(doc: ViewDocument) -> str:
    """Serialize a document; unchanged content always yields identical text."""
    payload = {
        "schema_version": doc.schema_version,
        "view_id": doc.view_id,
        "kind": doc.kind,
        "selector": doc.selector,
        "title": doc.title,
        "options": doc.options.model_dump(exclude_none=True),
        "nodes": sanitize_nodes(doc.nodes),
        "edges": sanitize_edges(doc.edges),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _drop_dangling_parents(doc: ViewDocument) -> ViewDocument:
    node_ids = {node.id for node in doc.nodes}
    dangling = [
        node for node in doc.nodes if node.parent_node and node.parent_node not in node_ids
    ]
    if not dangling:
        return doc
    logger.debug(
        "Dropping dangling parent references",
        extra={"view_id": doc.view_id, "count": len(dangling)},
    )
    nodes = [
        node.model_copy(update={"parent_node": None, "extent": None})
        if node.parent_node and node.parent_node not in node_ids
        else node
        for node in doc.nodes
    ]
    return doc.model_copy(update={"nodes": nodes})


def try_parse_view_doc(raw: str) -> Optional[ViewDocument]:
    """Parse persisted text; anything unusable is reported as None."""
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.debug("Ignoring view document that is not JSON")
        return None
    # Stored documents must spell out their version and graph; model defaults do not apply.
    if (
        not isinstance(payload, dict)
        or payload.get("schema_version") != SCHEMA_VERSION
        or not isinstance(payload.get("nodes"), list)
        or not isinstance(payload.get("edges"), list)
    ):
        logger.debug("Ignoring view document with unsupported layout")
        return None
    try:
        doc = ViewDocument.model_validate(payload)
    except ValidationError as exc:
        logger.debug("Ignoring invalid view document: %s", exc.error_count())
        return None
    return _drop_dangling_parents(doc)


async def load_view_doc(store: ITextStore, view: ViewRef) -> LoadedViewDoc:
    """Load the persisted document for ``view``; absent and malformed look the same."""
    path = view_doc_path(view)
    try:
        raw = await store.read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("No readable view document", extra={"path": path, "reason": str(exc)})
        return LoadedViewDoc(doc=None, path=path)
    return LoadedViewDoc(doc=try_parse_view_doc(raw), path=path)


async def save_view_doc(store: ITextStore, path: str, doc: ViewDocument) -> None:
    """Persist a sanitized document. Write errors propagate."""
    await store.write_text(path, dump_view_doc(doc))
    logger.info(
        "View document saved",
        extra={"path": path, "view_id": doc.view_id, "nodes": len(doc.nodes), "edges": len(doc.edges)},
    )


__all__ = [
    "LoadedViewDoc",
    "sanitize_node",
    "sanitize_edge",
    "sanitize_nodes",
    "sanitize_edges",
    "has_view_doc_changed",
    "dump_view_doc",
    "try_parse_view_doc",
    "load_view_doc",
    "save_view_doc",
]
