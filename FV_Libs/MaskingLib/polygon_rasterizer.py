"""
Polygon rasterization with the nonzero winding rule.

A pixel is covered when its centre (x + 0.5, y + 0.5) has a nonzero winding
number with respect to the closed polygon. Rows are processed as scanlines:
edge crossings are sorted left to right and spans with a nonzero running
winding count are filled.
"""

import math
from typing import Sequence

import numpy as np

from FV_Libs.ImageEditingLib.bitmap_models import Mask, Point
from FV_Libs.constants import MAX_COVERAGE


def rasterize_polygon(points: Sequence[Point], width: int, height: int) -> Mask:
    """
    Fill a closed polygon into a (width, height) Mask.

    The polygon is closed implicitly (last point connects to the first).
    Fewer than 3 points produce an empty mask.

    Args:
        points: Polygon vertices in native pixel space
        width: Mask width in pixels
        height: Mask height in pixels

    Returns:
        Mask with 255 inside the polygon and 0 elsewhere
    """
    if width < 0 or height < 0:
        raise ValueError(f"Mask size must be non-negative, got {width}x{height}")

    coverage = np.zeros((height, width), dtype=np.uint8)
    if len(points) < 3 or width == 0 or height == 0:
        return Mask(coverage)

    xs = np.array([p.x for p in points], dtype=np.float64)
    ys = np.array([p.y for p in points], dtype=np.float64)
    next_xs = np.roll(xs, -1)
    next_ys = np.roll(ys, -1)

    # horizontal edges never cross a scanline
    sloped = ys != next_ys
    x0, y0 = xs[sloped], ys[sloped]
    x1, y1 = next_xs[sloped], next_ys[sloped]
    if x0.size == 0:
        return Mask(coverage)

    direction = np.where(y1 > y0, 1, -1)
    edge_top = np.minimum(y0, y1)
    edge_bottom = np.maximum(y0, y1)
    inverse_slope = (x1 - x0) / (y1 - y0)

    first_row = max(0, math.ceil(edge_top.min() - 0.5))
    last_row = min(height, math.ceil(edge_bottom.max() - 0.5))

    for row in range(first_row, last_row):
        center_y = row + 0.5
        # half-open so a vertex shared by two edges is counted once
        active = (edge_top <= center_y) & (center_y < edge_bottom)
        if not active.any():
            continue

        crossings = x0[active] + (center_y - y0[active]) * inverse_slope[active]
        order = np.argsort(crossings, kind="stable")
        crossings = crossings[order]
        winding = np.cumsum(direction[active][order])

        for idx in range(len(crossings) - 1):
            if winding[idx] == 0:
                continue
            span_start = max(0, math.ceil(crossings[idx] - 0.5))
            span_end = min(width, math.ceil(crossings[idx + 1] - 0.5))
            if span_end > span_start:
                coverage[row, span_start:span_end] = MAX_COVERAGE

    return Mask(coverage)
