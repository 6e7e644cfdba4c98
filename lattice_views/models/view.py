"""View reference, identity and persisted document models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SCHEMA_VERSION = 1

ViewKind = Literal["global", "folder", "tag", "search"]


class GlobalViewRef(BaseModel):
    """The whole vault."""

    kind: Literal["global"] = "global"


class FolderViewRef(BaseModel):
    """A folder of the vault (empty string is the vault root)."""

    kind: Literal["folder"] = "folder"
    dir: str = ""


class TagViewRef(BaseModel):
    """Notes carrying a tag, with or without the leading '#'."""

    kind: Literal["tag"] = "tag"
    tag: str


class SearchViewRef(BaseModel):
    """Notes matching a full-text query."""

    kind: Literal["search"] = "search"
    query: str


ViewRef = Annotated[
    Union[GlobalViewRef, FolderViewRef, TagViewRef, SearchViewRef],
    Field(discriminator="kind"),
]


class ViewIdentity(BaseModel):
    """Stable identity derived from a view reference."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: ViewKind
    selector: str
    title: str


class ViewOptions(BaseModel):
    """Kind-specific query parameters stored alongside the view."""

    recursive: Optional[bool] = None
    limit: Optional[int] = Field(None, ge=1)


class Position(BaseModel):
    x: Union[int, float] = 0
    y: Union[int, float] = 0


class CanvasNode(BaseModel):
    """A node of a view document.

    UI layers may attach transient keys (selection state, measured sizes);
    they are accepted here and dropped by sanitization before writing.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    type: str
    position: Position = Field(default_factory=Position)
    data: Dict[str, Any] = Field(default_factory=dict)
    parent_node: Optional[str] = Field(None, alias="parentNode")
    extent: Optional[str] = None
    style: Optional[Dict[str, Any]] = None


class CanvasEdge(BaseModel):
    """A connection between two nodes of the same document."""

    model_config = ConfigDict(extra="allow")

    id: str
    source: str
    target: str
    type: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    label: Any = None
    style: Optional[Dict[str, Any]] = None


class ViewDocument(BaseModel):
    """Persisted, reconciled state of one view."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "schema_version": 1,
                "view_id": "folder:projects",
                "kind": "folder",
                "selector": "projects",
                "title": "projects",
                "options": {"recursive": True, "limit": 500},
                "nodes": [
                    {
                        "id": "projects/roadmap.md",
                        "type": "note",
                        "position": {"x": 0, "y": 0},
                        "data": {"noteId": "projects/roadmap.md", "title": "Roadmap", "content": ""},
                    }
                ],
                "edges": [],
            }
        }
    )

    schema_version: Literal[1] = SCHEMA_VERSION
    view_id: str
    kind: ViewKind
    selector: str
    title: str
    options: ViewOptions = Field(default_factory=ViewOptions)
    nodes: List[CanvasNode] = Field(default_factory=list)
    edges: List[CanvasEdge] = Field(default_factory=list)


@dataclass(frozen=True)
class ViewBuildResult:
    """Output of a view builder."""

    doc: ViewDocument
    changed: bool


__all__ = [
    "SCHEMA_VERSION",
    "ViewKind",
    "GlobalViewRef",
    "FolderViewRef",
    "TagViewRef",
    "SearchViewRef",
    "ViewRef",
    "ViewIdentity",
    "ViewOptions",
    "Position",
    "CanvasNode",
    "CanvasEdge",
    "ViewDocument",
    "ViewBuildResult",
]
