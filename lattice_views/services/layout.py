"""Grid snapping, node size estimates and skyline bin-packing reflow."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

GRID_SIZE = 24
GRID_GAP = GRID_SIZE * 4

MAX_WIDTH_ATTEMPTS = 30
NON_IMPROVING_WIDTH_LIMIT = 5

# Fixed footprints (width, height) per node type.
NODE_SIZES: Dict[str, Tuple[int, int]] = {
    "file": (220, 200),
    "folder": (220, 200),
    "link": (260, 200),
    "text": (190, 110),
    "frame": (300, 220),
}
DEFAULT_NODE_SIZE = (220, 160)

NOTE_WIDTH = 230
NOTE_MIN_HEIGHT = 150
NOTE_MAX_HEIGHT = 260
NOTE_LINE_HEIGHT = 16
NOTE_BASE_PADDING = 56


class LayoutNode(BaseModel):
    """What the layout engine needs to know about a node."""

    id: str
    type: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)
    style: Optional[Dict[str, Any]] = None


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def snap_to_grid(value: float, grid: int = GRID_SIZE) -> int:
    return _round_half_up(value / grid) * grid


def snap_point(x: float, y: float, grid: int = GRID_SIZE) -> Tuple[int, int]:
    return snap_to_grid(x, grid), snap_to_grid(y, grid)


def _estimate_text_lines(text: str, chars_per_line: int) -> int:
    if not text:
        return 0
    return sum(max(1, math.ceil(len(line.strip()) / chars_per_line)) for line in text.split("\n"))


def _estimate_note_size(title: str, content: str) -> Tuple[int, int]:
    title_lines = max(1, _estimate_text_lines(title, 24))
    content_lines = min(10, _estimate_text_lines(content, 32))
    height = NOTE_BASE_PADDING + (title_lines + content_lines) * NOTE_LINE_HEIGHT
    return NOTE_WIDTH, min(NOTE_MAX_HEIGHT, max(NOTE_MIN_HEIGHT, height))


def _style_size(style: Optional[Mapping[str, Any]]) -> Optional[Tuple[float, float]]:
    if not style:
        return None
    width, height = style.get("width"), style.get("height")
    if isinstance(width, (int, float)) and isinstance(height, (int, float)):
        if width > 0 and height > 0:
            return width, height
    return None


def estimate_node_size(node: LayoutNode) -> Tuple[float, float]:
    """Estimated (width, height) of a node as rendered."""
    if node.type == "note":
        title = node.data.get("title")
        content = node.data.get("content")
        return _estimate_note_size(
            title if isinstance(title, str) else "",
            content if isinstance(content, str) else "",
        )
    if node.type == "frame":
        sized = _style_size(node.style)
        if sized:
            return sized
    return NODE_SIZES.get(node.type, DEFAULT_NODE_SIZE)


def _place_skyline(
    order: Sequence[int],
    cells: Sequence[Tuple[int, int]],
    width_units: int,
    padding_units_x: int,
    padding_units_y: int,
) -> Tuple[List[Tuple[int, int]], int]:
    """Place padded rectangles left-to-right on a skyline of ``width_units`` columns."""
    skyline = [0] * width_units
    placed: List[Tuple[int, int]] = [(0, 0)] * len(cells)
    for idx in order:
        cell_w, cell_h = cells[idx]
        padded_w = cell_w + padding_units_x
        padded_h = cell_h + padding_units_y
        best_x, best_y, best_height = 0, math.inf, math.inf
        for x in range(max(0, width_units - padded_w) + 1):
            y = max(skyline[x : x + padded_w])
            height_after = y + padded_h
            if height_after < best_height or (height_after == best_height and y < best_y):
                best_x, best_y, best_height = x, y, height_after
        for column in range(best_x, best_x + padded_w):
            skyline[column] = best_height
        placed[idx] = (best_x, int(best_y))
    return placed, max(skyline)


def compute_grid_positions(
    nodes: Sequence[LayoutNode],
    *,
    start_x: float = 0,
    start_y: float = 0,
    columns: Optional[int] = None,
    grid_size: int = GRID_SIZE,
    gap: int = GRID_GAP,
    padding_x: Optional[int] = None,
    padding_y: Optional[int] = None,
) -> Dict[str, Tuple[int, int]]:
    """
    Pack nodes onto the grid without overlap and return id -> (x, y).

    Each candidate total width (in grid cells) is packed with a skyline
    heuristic; the packing scoring lowest on area plus distance from the
    width implied by ``columns`` wins. Output is deterministic for a given
    input, ties in footprint being ordered by node id.
    """
    if not nodes:
        return {}

    padding_x = gap if padding_x is None else padding_x
    padding_y = gap if padding_y is None else padding_y
    safety_px = max(12, _round_half_up(grid_size * 0.5))
    padding_units_x = max(1, _round_half_up(padding_x / grid_size))
    padding_units_y = max(1, _round_half_up(padding_y / grid_size))

    cells: List[Tuple[int, int]] = []
    for node in nodes:
        width, height = estimate_node_size(node)
        cells.append(
            (
                max(1, math.ceil((width + safety_px) / grid_size)),
                max(1, math.ceil((height + safety_px) / grid_size)),
            )
        )

    order = sorted(
        range(len(nodes)),
        key=lambda i: (-(cells[i][0] * cells[i][1]), nodes[i].id),
    )

    count = len(nodes)
    preferred_columns = columns or max(2, min(8, math.ceil(math.sqrt(count))))
    max_width_units = max(w for w, _ in cells)
    avg_width_units = sum(w for w, _ in cells) / count
    target_width_units = max(max_width_units, math.ceil(avg_width_units * preferred_columns))
    try_widths = max(6, preferred_columns * 3)

    min_width = max(
        max_width_units + padding_units_x,
        math.floor(target_width_units - try_widths / 2),
    )
    max_width = max(min_width, math.ceil(target_width_units + try_widths))
    max_width = min(max_width, min_width + MAX_WIDTH_ATTEMPTS - 1)

    best_positions: Optional[List[Tuple[int, int]]] = None
    best_score = math.inf
    non_improving = 0
    for width_units in range(min_width, max_width + 1):
        placed, max_height = _place_skyline(
            order, cells, width_units, padding_units_x, padding_units_y
        )
        width_penalty = abs(width_units - target_width_units)
        score = max_height * width_units + width_penalty * max_height * 2
        if score < best_score:
            best_score = score
            best_positions = placed
            non_improving = 0
        else:
            non_improving += 1
            if non_improving >= NON_IMPROVING_WIDTH_LIMIT:
                break

    assert best_positions is not None
    return {
        node.id: snap_point(start_x + cx * grid_size, start_y + cy * grid_size, grid_size)
        for node, (cx, cy) in zip(nodes, best_positions)
    }


__all__ = [
    "GRID_SIZE",
    "GRID_GAP",
    "LayoutNode",
    "snap_to_grid",
    "snap_point",
    "estimate_node_size",
    "compute_grid_positions",
]
