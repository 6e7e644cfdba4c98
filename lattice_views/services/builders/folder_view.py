"""Folder (and whole-vault) view builder."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ...models.view import (
    CanvasNode,
    FolderViewRef,
    GlobalViewRef,
    ViewBuildResult,
    ViewDocument,
    ViewIdentity,
    ViewOptions,
)
from ..frame_layout import build_frame_layout
from ..identity import view_identity
from ..interfaces import IVaultStore
from ..note_preview import fetch_note_previews
from .common import PrimaryNode, build_primary_file_node, build_primary_note_node
from .list_view import reconcile_view_doc

DEFAULT_FOLDER_LIMIT = 500
FOLDER_MANAGED_TYPES = frozenset({"note", "file"})
FRAME_ID_PREFIX = "folder:"


def _sort_key(rel_path: str) -> tuple[str, str]:
    return rel_path.lower(), rel_path


def _is_empty_folder_frame(node: CanvasNode, nodes: Sequence[CanvasNode]) -> bool:
    """Builder-made frames go once nothing points at them as parent."""
    if node.type != "frame" or not node.id.startswith(FRAME_ID_PREFIX):
        return False
    return not any(other.parent_node == node.id for other in nodes)


async def _build_listing_view(
    identity: ViewIdentity,
    options: ViewOptions,
    existing: Optional[ViewDocument],
    vault: IVaultStore,
) -> ViewBuildResult:
    recursive = True if options.recursive is None else options.recursive
    limit = options.limit or DEFAULT_FOLDER_LIMIT
    entries = await vault.list_files(identity.selector or None, recursive, limit)

    markdown = sorted({entry.rel_path for entry in entries if entry.is_markdown}, key=_sort_key)
    others = sorted(
        {entry.rel_path for entry in entries if not entry.is_markdown} - set(markdown),
        key=_sort_key,
    )
    markdown_set = set(markdown)
    previews = await fetch_note_previews(vault, markdown)

    def build_node(rel_path: str, prev_node: Optional[CanvasNode]) -> PrimaryNode:
        if rel_path in markdown_set:
            return build_primary_note_node(rel_path, prev_node, previews.get(rel_path))
        return build_primary_file_node(rel_path, prev_node)

    def initial_layout(nodes: List[CanvasNode]) -> List[CanvasNode]:
        by_id: Dict[str, CanvasNode] = {node.id: node for node in nodes}
        return build_frame_layout(identity.selector, [node.id for node in nodes], by_id.__getitem__)

    return reconcile_view_doc(
        identity=identity,
        options=ViewOptions(recursive=recursive, limit=limit),
        existing=existing,
        primary_ids=markdown + others,
        build_primary_node=build_node,
        managed_types=FOLDER_MANAGED_TYPES,
        initial_layout=initial_layout,
        drop_foreign=_is_empty_folder_frame,
    )


async def build_folder_view_doc(
    directory: str,
    options: ViewOptions,
    existing: Optional[ViewDocument],
    *,
    vault: IVaultStore,
) -> ViewBuildResult:
    """Reconcile the files under ``directory`` into its view document.

    The first build groups files into one frame per top-level subfolder.
    """
    identity = view_identity(FolderViewRef(dir=directory))
    return await _build_listing_view(identity, options, existing, vault)


async def build_global_view_doc(
    options: ViewOptions,
    existing: Optional[ViewDocument],
    *,
    vault: IVaultStore,
) -> ViewBuildResult:
    """Folder view over the vault root, stored as the global view."""
    return await _build_listing_view(view_identity(GlobalViewRef()), options, existing, vault)


__all__ = ["build_folder_view_doc", "build_global_view_doc", "FOLDER_MANAGED_TYPES"]
