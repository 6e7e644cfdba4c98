"""Reconciliation of fresh query results against a persisted view document."""

from __future__ import annotations

import logging
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence

from ...models.view import (
    CanvasNode,
    Position,
    ViewBuildResult,
    ViewDocument,
    ViewIdentity,
    ViewOptions,
)
from ..codec import has_view_doc_changed
from ..layout import GRID_GAP, compute_grid_positions
from .common import PrimaryNode, as_layout_node, max_right_for_nodes

logger = logging.getLogger(__name__)

BuildPrimaryNode = Callable[[str, Optional[CanvasNode]], PrimaryNode]
InitialLayout = Callable[[List[CanvasNode]], List[CanvasNode]]
DropForeign = Callable[[CanvasNode, Sequence[CanvasNode]], bool]


def _apply_positions(
    nodes: Sequence[CanvasNode], positions: Dict[str, tuple[int, int]]
) -> List[CanvasNode]:
    placed: List[CanvasNode] = []
    for node in nodes:
        pos = positions.get(node.id)
        if pos is None:
            placed.append(node)
        else:
            placed.append(node.model_copy(update={"position": Position(x=pos[0], y=pos[1])}))
    return placed


def reconcile_view_doc(
    *,
    identity: ViewIdentity,
    options: ViewOptions,
    existing: Optional[ViewDocument],
    primary_ids: Sequence[str],
    build_primary_node: BuildPrimaryNode,
    managed_types: FrozenSet[str],
    initial_layout: Optional[InitialLayout] = None,
    drop_foreign: Optional[DropForeign] = None,
) -> ViewBuildResult:
    """
    Merge query results into the previous document.

    Nodes for ``primary_ids`` come from ``build_primary_node`` which receives
    the prior node with the same id, if any. Prior nodes outside
    ``managed_types`` are carried over unchanged unless ``drop_foreign`` rejects
    them given the assembled node list. Only nodes without a prior
    node are positioned: on a first build by ``initial_layout`` when given,
    otherwise by the skyline packer (next to existing content on later builds).
    Surviving nodes keep their previous order. Edges survive only when both
    endpoints do.
    """
    prev_nodes = list(existing.nodes) if existing is not None else []
    prev_edges = list(existing.edges) if existing is not None else []
    prev_by_id = {node.id: node for node in prev_nodes}

    next_nodes: List[CanvasNode] = []
    new_ids: List[str] = []
    for item_id in primary_ids:
        built = build_primary_node(item_id, prev_by_id.get(item_id))
        next_nodes.append(built.node)
        if built.is_new:
            new_ids.append(built.node.id)

    next_ids = {node.id for node in next_nodes}
    foreign: List[CanvasNode] = []
    for node in prev_nodes:
        if node.id in next_ids or node.type in managed_types:
            continue
        foreign.append(node)
        next_ids.add(node.id)
    if drop_foreign is not None:
        candidates = next_nodes + foreign
        foreign = [node for node in foreign if not drop_foreign(node, candidates)]
    next_nodes.extend(foreign)
    next_ids = {node.id for node in next_nodes}

    # Surviving nodes keep their stored order (parents before children); new ones go last.
    if prev_nodes:
        prior_rank = {node.id: rank for rank, node in enumerate(prev_nodes)}
        next_nodes.sort(key=lambda node: prior_rank.get(node.id, len(prior_rank)))

    if new_ids:
        if existing is None and initial_layout is not None:
            next_nodes = initial_layout(next_nodes)
            next_ids = {node.id for node in next_nodes}
        elif existing is None or not prev_nodes:
            positions = compute_grid_positions([as_layout_node(node) for node in next_nodes])
            next_nodes = _apply_positions(next_nodes, positions)
        else:
            new_id_set = set(new_ids)
            placed = [node for node in next_nodes if node.id not in new_id_set]
            start_x = max_right_for_nodes(placed) + GRID_GAP * 2
            positions = compute_grid_positions(
                [as_layout_node(node) for node in next_nodes if node.id in new_id_set],
                start_x=start_x,
                start_y=0,
            )
            next_nodes = _apply_positions(next_nodes, positions)

    next_edges = [
        edge for edge in prev_edges if edge.source in next_ids and edge.target in next_ids
    ]
    dropped_edges = len(prev_edges) - len(next_edges)

    doc = ViewDocument(
        view_id=identity.id,
        kind=identity.kind,
        selector=identity.selector,
        title=identity.title,
        options=options,
        nodes=next_nodes,
        edges=next_edges,
    )
    changed = has_view_doc_changed(existing, next_nodes, next_edges)
    logger.debug(
        "View reconciled",
        extra={
            "view_id": identity.id,
            "nodes": len(next_nodes),
            "new_nodes": len(new_ids),
            "dropped_edges": dropped_edges,
            "changed": changed,
        },
    )
    return ViewBuildResult(doc=doc, changed=changed)


__all__ = ["reconcile_view_doc", "BuildPrimaryNode", "InitialLayout", "DropForeign"]
