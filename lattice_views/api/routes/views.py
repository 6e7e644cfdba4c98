"""HTTP API routes for loading view documents."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ...models.view import ViewDocument, ViewOptions
from ...services.interfaces import NeedsIndexRebuildError
from ...services.view_loader import (
    IndexRebuildFailedError,
    LoaderState,
    ViewLoader,
    ViewLoadResult,
)
from ..dependencies import get_view_loader

router = APIRouter()


class ViewResponse(BaseModel):
    """A view document and the loader status that goes with it."""

    path: Optional[str] = None
    doc: Optional[ViewDocument] = None
    state: LoaderState
    loading_message: str = ""
    error: str = ""


def _to_response(result: Optional[ViewLoadResult]) -> ViewResponse:
    if result is None:
        raise HTTPException(status_code=400, detail="View selector cannot be empty")
    if result.doc is None and result.state == LoaderState.FAILED:
        # Bad selectors and an unavailable index go to the registered handlers (400 / 503).
        if isinstance(
            result.exception, (ValueError, NeedsIndexRebuildError, IndexRebuildFailedError)
        ):
            raise result.exception
        raise HTTPException(
            status_code=500,
            detail={"error": "view_build_failed", "message": result.error},
        )
    return ViewResponse(
        path=result.path,
        doc=result.doc,
        state=result.state,
        loading_message=result.loading_message,
        error=result.error,
    )


@router.get("/api/views/global", response_model=ViewResponse)
async def get_global_view(
    loader: Annotated[ViewLoader, Depends(get_view_loader)],
    limit: Optional[int] = Query(None, ge=1, le=10_000),
) -> ViewResponse:
    """Whole-vault view."""
    options = ViewOptions(recursive=True, limit=limit) if limit else None
    return _to_response(await loader.load_global_view(options))


@router.get("/api/views/folder", response_model=ViewResponse)
async def get_folder_view(
    loader: Annotated[ViewLoader, Depends(get_view_loader)],
    dir: str = Query("", max_length=1024),
    recursive: bool = Query(True),
    limit: Optional[int] = Query(None, ge=1, le=10_000),
) -> ViewResponse:
    """View of one folder of the vault."""
    options = ViewOptions(recursive=recursive, limit=limit or loader.config.folder_view_limit)
    return _to_response(await loader.load_folder_view(dir, options))


@router.get("/api/views/tag", response_model=ViewResponse)
async def get_tag_view(
    loader: Annotated[ViewLoader, Depends(get_view_loader)],
    tag: str = Query(..., min_length=1, max_length=256),
    limit: Optional[int] = Query(None, ge=1, le=10_000),
) -> ViewResponse:
    """View of the notes carrying a tag."""
    options = ViewOptions(limit=limit) if limit else None
    return _to_response(await loader.load_tag_view(tag, options))


@router.get("/api/views/search", response_model=ViewResponse)
async def get_search_view(
    loader: Annotated[ViewLoader, Depends(get_view_loader)],
    q: str = Query(..., min_length=1, max_length=256),
    limit: Optional[int] = Query(None, ge=1, le=10_000),
) -> ViewResponse:
    """View of the notes matching a full-text query."""
    options = ViewOptions(limit=limit) if limit else None
    return _to_response(await loader.load_search_view(q, options))


__all__ = ["router", "ViewResponse"]
