"""Models exchanged with the vault and note index collaborators."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FsEntry(BaseModel):
    """A file found while listing a vault folder."""

    rel_path: str = Field(..., description="Path relative to the vault root (Unix separators)")
    is_markdown: bool = False


class TextReadResult(BaseModel):
    """Result of reading one file in a batch; text is None when the read failed."""

    rel_path: str
    text: Optional[str] = None


class NoteHit(BaseModel):
    """A note returned by a search or tag query."""

    id: str = Field(..., description="Note path relative to the vault root")
    title: str = ""


class NotePreview(BaseModel):
    """Display title and excerpt of a note."""

    title: str
    content: str = ""


class IndexHealth(BaseModel):
    """Note index health metrics."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "note_count": 142,
                "last_full_rebuild": "2025-01-01T00:00:00Z",
            }
        }
    )

    note_count: int = Field(..., ge=0)
    last_full_rebuild: Optional[datetime] = None


__all__ = ["FsEntry", "TextReadResult", "NoteHit", "NotePreview", "IndexHealth"]
