"""Pydantic models for data validation and serialization."""

from .vault import FsEntry, IndexHealth, NoteHit, NotePreview, TextReadResult
from .view import (
    SCHEMA_VERSION,
    CanvasEdge,
    CanvasNode,
    FolderViewRef,
    GlobalViewRef,
    Position,
    SearchViewRef,
    TagViewRef,
    ViewBuildResult,
    ViewDocument,
    ViewIdentity,
    ViewKind,
    ViewOptions,
    ViewRef,
)

__all__ = [
    "SCHEMA_VERSION",
    "ViewKind",
    "ViewRef",
    "GlobalViewRef",
    "FolderViewRef",
    "TagViewRef",
    "SearchViewRef",
    "ViewIdentity",
    "ViewOptions",
    "Position",
    "CanvasNode",
    "CanvasEdge",
    "ViewDocument",
    "ViewBuildResult",
    "FsEntry",
    "TextReadResult",
    "NoteHit",
    "NotePreview",
    "IndexHealth",
]
