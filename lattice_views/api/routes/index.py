"""HTTP API routes for index operations."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...models.vault import IndexHealth
from ...services.indexer import IndexerService
from ..dependencies import get_indexer_service

router = APIRouter()


class RebuildResponse(BaseModel):
    """Response from index rebuild."""

    status: str
    notes_indexed: int


class TagCount(BaseModel):
    tag: str
    count: int


@router.get("/api/index/health", response_model=IndexHealth)
async def get_index_health(
    indexer: Annotated[IndexerService, Depends(get_indexer_service)],
) -> IndexHealth:
    """Get index health statistics."""
    return indexer.get_health()


@router.post("/api/index/rebuild", response_model=RebuildResponse)
async def rebuild_index(
    indexer: Annotated[IndexerService, Depends(get_indexer_service)],
) -> RebuildResponse:
    """Rebuild the entire index from the vault."""
    notes_indexed = await indexer.rebuild_index()
    return RebuildResponse(status="completed", notes_indexed=notes_indexed)


@router.get("/api/tags", response_model=list[TagCount])
async def get_tags(
    indexer: Annotated[IndexerService, Depends(get_indexer_service)],
) -> list[TagCount]:
    """Get all tags with usage counts."""
    return [TagCount(**row) for row in indexer.get_tags()]


__all__ = ["router", "RebuildResponse", "TagCount"]
