"""Initial frame-grouped layout for the first build of a folder view."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Callable, Dict, List, Sequence

from ..models.view import CanvasNode, Position

ROOT_GROUP_KEY = "__root__"
ROOT_GROUP_TITLE = "Root"

GROUP_COLUMNS = 2
FRAME_SPACING_X = 80
FRAME_SPACING_Y = 80
FRAME_PAD_X = 50
FRAME_PAD_Y = 60
NOTE_CELL_WIDTH = 320
NOTE_CELL_HEIGHT = 280
MAX_INNER_COLUMNS = 4


@dataclass
class _Group:
    key: str
    title: str
    files: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class _FrameBox:
    inner_cols: int
    width: int
    height: int


def group_key_for(rel_path: str, selector: str) -> str:
    """First path segment below the folder, or the root group for direct children."""
    prefix = f"{selector.rstrip('/')}/" if selector else ""
    after = rel_path[len(prefix):] if prefix and rel_path.startswith(prefix) else rel_path
    parts = [part for part in after.split("/") if part]
    return parts[0] if len(parts) > 1 else ROOT_GROUP_KEY


def frame_id_for(selector: str, key: str) -> str:
    return f"folder:{selector}/{key}" if selector else f"folder:{key}"


def _frame_box(child_count: int) -> _FrameBox:
    inner_cols = max(1, min(MAX_INNER_COLUMNS, math.ceil(math.sqrt(child_count))))
    inner_rows = max(1, math.ceil(child_count / inner_cols))
    return _FrameBox(
        inner_cols=inner_cols,
        width=FRAME_PAD_X * 2 + inner_cols * NOTE_CELL_WIDTH,
        height=FRAME_PAD_Y * 2 + inner_rows * NOTE_CELL_HEIGHT,
    )


def build_frame_layout(
    selector: str,
    rel_paths: Sequence[str],
    make_child: Callable[[str], CanvasNode],
) -> List[CanvasNode]:
    """
    Group files into frames and position everything.

    Groups and the files inside each group are ordered case-insensitively.
    Frames are tiled on a two-column macro grid; each macro column is as wide
    as its widest frame and each macro row as tall as its tallest frame.
    ``make_child`` builds the node for one file; its position, parent and
    extent are assigned here. Frames come first in the returned list.
    """
    groups: Dict[str, _Group] = {}
    for rel_path in rel_paths:
        key = group_key_for(rel_path, selector)
        title = ROOT_GROUP_TITLE if key == ROOT_GROUP_KEY else key
        groups.setdefault(key, _Group(key=key, title=title)).files.append(rel_path)

    ordered = sorted(groups.values(), key=lambda group: (group.title.lower(), group.key))
    for group in ordered:
        group.files.sort(key=lambda path: (path.lower(), path))
    boxes = [_frame_box(len(group.files)) for group in ordered]

    column_widths = [0] * GROUP_COLUMNS
    row_heights = [0] * math.ceil(len(ordered) / GROUP_COLUMNS)
    for index, box in enumerate(boxes):
        column_widths[index % GROUP_COLUMNS] = max(column_widths[index % GROUP_COLUMNS], box.width)
        row_heights[index // GROUP_COLUMNS] = max(row_heights[index // GROUP_COLUMNS], box.height)

    frames: List[CanvasNode] = []
    children: List[CanvasNode] = []
    for index, (group, box) in enumerate(zip(ordered, boxes)):
        gx, gy = index % GROUP_COLUMNS, index // GROUP_COLUMNS
        frame_x = sum(column_widths[:gx]) + gx * FRAME_SPACING_X
        frame_y = sum(row_heights[:gy]) + gy * FRAME_SPACING_Y
        frame_id = frame_id_for(selector, group.key)
        frames.append(
            CanvasNode(
                id=frame_id,
                type="frame",
                position=Position(x=frame_x, y=frame_y),
                data={"title": group.title},
                style={"width": box.width, "height": box.height},
            )
        )
        for slot, rel_path in enumerate(group.files):
            col, row = slot % box.inner_cols, slot // box.inner_cols
            child = make_child(rel_path)
            children.append(
                child.model_copy(
                    update={
                        "position": Position(
                            x=FRAME_PAD_X + col * NOTE_CELL_WIDTH,
                            y=FRAME_PAD_Y + row * NOTE_CELL_HEIGHT,
                        ),
                        "parent_node": frame_id,
                        "extent": "parent",
                    }
                )
            )

    return frames + children


__all__ = [
    "ROOT_GROUP_KEY",
    "ROOT_GROUP_TITLE",
    "group_key_for",
    "frame_id_for",
    "build_frame_layout",
]
