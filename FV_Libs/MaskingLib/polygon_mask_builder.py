"""
Interactive polygon capture producing a floor Mask.

The builder collects points clicked on a displayed image, converts them to
native pixel space, and rasterizes the closed outline on completion.

States:
    IDLE      -> no points
    DRAWING   -> 1-2 points
    DRAWABLE  -> 3 or more points (complete() allowed)
    COMPLETED -> terminal, a Mask was produced
    CANCELLED -> terminal, all points discarded

Example:
    >>> builder = PolygonMaskBuilder(4000, 3000,
    ...     CoordinateMapper(4000, 3000, display_width=800, display_height=600))
    >>> for click in [(2, 2), (20, 2), (20, 20)]:
    ...     builder.add_point(click)
    >>> mask = builder.complete()
    >>> mask.size
    (4000, 3000)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

from FV_Libs.ImageEditingLib.bitmap_models import Mask, Point
from FV_Libs.MaskingLib.coordinate_mapping import CoordinateMapper
from FV_Libs.MaskingLib.polygon_rasterizer import rasterize_polygon
from FV_Libs.constants import MIN_POLYGON_POINTS
from FV_Libs.errors import ValidationError

logger = logging.getLogger(__name__)


class PolygonState(Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    DRAWABLE = "drawable"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATES = {PolygonState.COMPLETED, PolygonState.CANCELLED}


@dataclass(frozen=True)
class Segment:
    """Rubber-band line from the last committed point to the pointer."""
    start: Point
    end: Point


class PolygonMaskBuilder:
    """
    Collects polygon points in native pixel space and builds a Mask.

    Args:
        image_width: Native width of the source image
        image_height: Native height of the source image
        mapper: Display-to-native mapper (identity if omitted)

    Raises:
        ValueError: If the image size is not positive or the mapper's
                    native size does not match it
    """

    def __init__(
        self,
        image_width: int,
        image_height: int,
        mapper: Optional[CoordinateMapper] = None,
    ):
        if image_width <= 0 or image_height <= 0:
            raise ValueError(
                f"Image size must be positive, got {image_width}x{image_height}"
            )
        if mapper is None:
            mapper = CoordinateMapper.identity(image_width, image_height)
        elif (mapper.native_width, mapper.native_height) != (image_width, image_height):
            raise ValueError(
                f"Mapper native size {mapper.native_width}x{mapper.native_height} "
                f"does not match image size {image_width}x{image_height}"
            )

        self._width = int(image_width)
        self._height = int(image_height)
        self._mapper = mapper
        self._points: List[Point] = []
        self._terminal: Optional[PolygonState] = None

    @property
    def state(self) -> PolygonState:
        if self._terminal is not None:
            return self._terminal
        count = len(self._points)
        if count == 0:
            return PolygonState.IDLE
        if count < MIN_POLYGON_POINTS:
            return PolygonState.DRAWING
        return PolygonState.DRAWABLE

    @property
    def is_active(self) -> bool:
        return self._terminal is None

    @property
    def points(self) -> Tuple[Point, ...]:
        return tuple(self._points)

    @property
    def point_count(self) -> int:
        return len(self._points)

    @property
    def mapper(self) -> CoordinateMapper:
        return self._mapper

    @property
    def image_size(self) -> Tuple[int, int]:
        return (self._width, self._height)

    def _ensure_active(self) -> None:
        if self._terminal is not None:
            raise ValidationError("polygon session is closed")

    def set_display_size(
        self,
        display_width: float,
        display_height: float,
        origin: Optional[Tuple[float, float]] = None,
    ) -> None:
        """Update the display geometry after a zoom or resize."""
        self._ensure_active()
        self._mapper = self._mapper.with_display_size(display_width, display_height, origin)

    def add_point(self, display_coord: Any) -> Point:
        """
        Convert a display coordinate and append it to the polygon.

        Returns:
            The stored Point (native pixel space)
        """
        self._ensure_active()
        point = self._mapper.to_native(display_coord)
        self._points.append(point)
        logger.debug(f"Added polygon point {len(self._points)}: ({point.x:.1f}, {point.y:.1f})")
        return point

    def undo_last(self) -> Optional[Point]:
        """Remove the most recent point. No-op on an empty polygon."""
        self._ensure_active()
        if not self._points:
            return None
        return self._points.pop()

    def clear(self) -> None:
        self._ensure_active()
        self._points.clear()

    def preview_segment(self, pointer_coord: Any) -> Optional[Segment]:
        """
        Line from the last committed point to the pointer position.

        Never modifies the polygon. Returns None when there is no point
        to draw from or the session has ended.
        """
        if self._terminal is not None or not self._points:
            return None
        return Segment(self._points[-1], self._mapper.to_native(pointer_coord))

    def complete(self) -> Mask:
        """
        Close the polygon and rasterize it into a Mask of the image size.

        Raises:
            ValidationError: If fewer than 3 points exist or the session
                             has already ended
        """
        self._ensure_active()
        if len(self._points) < MIN_POLYGON_POINTS:
            raise ValidationError("insufficient points")

        mask = rasterize_polygon(self._points, self._width, self._height)
        self._terminal = PolygonState.COMPLETED
        logger.info(
            f"Polygon completed with {len(self._points)} points, "
            f"{mask.covered_count()} pixels covered"
        )
        return mask

    def cancel(self) -> None:
        """End the session and discard all points."""
        self._ensure_active()
        self._points.clear()
        self._terminal = PolygonState.CANCELLED
        logger.debug("Polygon capture cancelled")
