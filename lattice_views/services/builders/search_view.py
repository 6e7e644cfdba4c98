"""Search view builder."""

from __future__ import annotations

from typing import Optional

from ...models.view import CanvasNode, SearchViewRef, ViewBuildResult, ViewDocument, ViewOptions
from ..identity import view_identity
from ..interfaces import INoteIndex, IVaultStore
from ..note_preview import fetch_note_previews
from .common import PrimaryNode, build_primary_note_node, unique_ids
from .list_view import reconcile_view_doc
from .tag_view import NOTE_MANAGED_TYPES

DEFAULT_SEARCH_LIMIT = 200


async def build_search_view_doc(
    query: str,
    options: ViewOptions,
    existing: Optional[ViewDocument],
    *,
    index: INoteIndex,
    vault: IVaultStore,
) -> ViewBuildResult:
    identity = view_identity(SearchViewRef(query=query))
    limit = options.limit or DEFAULT_SEARCH_LIMIT
    hits = await index.search(identity.selector, limit)

    ids = unique_ids((hit.id for hit in hits), limit)
    titles = {hit.id: hit.title for hit in hits}
    previews = await fetch_note_previews(vault, ids)

    def build_node(note_id: str, prev_node: Optional[CanvasNode]) -> PrimaryNode:
        return build_primary_note_node(note_id, prev_node, previews.get(note_id), titles.get(note_id))

    return reconcile_view_doc(
        identity=identity,
        options=ViewOptions(limit=limit),
        existing=existing,
        primary_ids=ids,
        build_primary_node=build_node,
        managed_types=NOTE_MANAGED_TYPES,
    )


__all__ = ["build_search_view_doc"]
