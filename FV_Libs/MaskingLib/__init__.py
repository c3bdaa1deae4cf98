"""
MaskingLib - Manual floor outlining

This module converts display coordinates to native image pixels and turns
a captured polygon into a coverage Mask.
"""

from FV_Libs.MaskingLib.coordinate_mapping import CoordinateMapper, coerce_coord
from FV_Libs.MaskingLib.polygon_rasterizer import rasterize_polygon
from FV_Libs.MaskingLib.polygon_mask_builder import (
    PolygonState,
    Segment,
    PolygonMaskBuilder,
)

__all__ = [
    "CoordinateMapper",
    "coerce_coord",
    "rasterize_polygon",
    "PolygonState",
    "Segment",
    "PolygonMaskBuilder",
]
