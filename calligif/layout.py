"""
Static multi-column layout.

Characters are dropped into K columns greedily, in input order, each one
going to the column that is currently shortest (lowest index on ties).
This balances column heights without sorting, so the reading order of
the poem is preserved top-to-bottom within each column.

Pixel coordinates are floored after scaling, and each column accumulates
its own offset, so neighbouring columns may drift by a pixel relative to
each other.  That drift is intentional and kept.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

from PIL import Image

from calligif.compositor import overlay
from calligif.exceptions import EmptyFramesError
from calligif.types import WHITE, Frame

logger = logging.getLogger(__name__)


def calculate_layout_data(heights: Sequence[float], k: int) -> tuple[float, list[int]]:
    """Greedily distribute *heights* over *k* columns.

    Returns ``(h_max, layout_map)`` where ``layout_map[i]`` is the
    column assigned to item ``i``.
    """
    if k < 1:
        raise ValueError(f"Column count must be at least 1, got {k}")
    column_heights = [0.0] * k
    layout_map: list[int] = []
    for h in heights:
        # min() keeps the first (lowest-index) column on ties.
        target = min(range(k), key=column_heights.__getitem__)
        column_heights[target] += h
        layout_map.append(target)
    return max(column_heights), layout_map


def word_coordinates(
    item_width: float,
    heights: Sequence[float],
    scale: float,
    k: int,
    layout_map: Sequence[int],
) -> list[tuple[int, int]]:
    """Top-left pixel position of every item for a given column map."""
    column_offsets = [0.0] * k
    scaled_width = item_width * scale
    coords: list[tuple[int, int]] = []
    for i, h in enumerate(heights):
        column = layout_map[i]
        x = column * scaled_width
        y = column_offsets[column]
        coords.append((math.floor(x), math.floor(y)))
        column_offsets[column] += h * scale
    return coords


@dataclass
class LayoutPlan:
    columns: int
    h_max: float
    scale: float
    layout_map: list[int] = field(default_factory=list)
    coordinates: list[tuple[int, int]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "columns": self.columns,
            "h_max": self.h_max,
            "scale": self.scale,
            "layout_map": list(self.layout_map),
            "coordinates": [list(c) for c in self.coordinates],
        }


def _fit_scale(k, h_max, item_width, canvas_width, canvas_height):
    scales = []
    if item_width > 0:
        scales.append(canvas_width / (k * item_width))
    if h_max > 0:
        scales.append(canvas_height / h_max)
    return min(scales) if scales else 1.0


def plan_static_layout(
    heights: Sequence[float],
    item_width: float,
    canvas_width: int,
    canvas_height: int,
    columns: int | None = None,
) -> LayoutPlan:
    """Plan a column layout that fits the canvas.

    With *columns* given, only that K is evaluated.  Otherwise every K
    from 1 to N is tried and the one allowing the largest uniform scale
    wins; ties keep the smaller K.
    """
    if not heights:
        raise ValueError("Cannot plan a layout for zero items")
    candidates = [columns] if columns is not None else range(1, len(heights) + 1)

    best: LayoutPlan | None = None
    for k in candidates:
        h_max, layout_map = calculate_layout_data(heights, k)
        scale = _fit_scale(k, h_max, item_width, canvas_width, canvas_height)
        logger.debug("K=%d: h_max=%.1f scale=%.4f", k, h_max, scale)
        if best is None or scale > best.scale:
            best = LayoutPlan(columns=k, h_max=h_max, scale=scale, layout_map=layout_map)

    best.coordinates = word_coordinates(item_width, heights, best.scale,
                                        best.columns, best.layout_map)
    return best


def compose_static_layout(
    frames: list[Frame],
    canvas_width: int,
    canvas_height: int,
    columns: int | None = None,
) -> tuple[Image.Image, LayoutPlan]:
    """Arrange whole-character stills into columns on a white canvas.

    Empty (missing) characters take no vertical space.  Frames are
    resized in place by the plan's scale.
    """
    drawable = [f for f in frames if not f.is_empty()]
    if not drawable:
        raise EmptyFramesError("No static character images to lay out.")
    item_width = max(f.width for f in drawable)
    heights = [f.height for f in frames]

    plan = plan_static_layout(heights, item_width, canvas_width, canvas_height, columns)

    canvas = Image.new("RGBA", (canvas_width, canvas_height), WHITE)
    for frame, (x, y) in zip(frames, plan.coordinates):
        if frame.is_empty():
            continue
        frame.resize_by_scale(plan.scale)
        overlay(canvas, frame.image, x, y)
    logger.info("Static layout: %d characters in %d columns (scale %.3f)",
                len(frames), plan.columns, plan.scale)
    return canvas, plan
