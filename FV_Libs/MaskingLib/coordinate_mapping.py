"""
Display-to-native coordinate mapping.

A pointer position reported by a UI is in display units (a scaled, zoomed,
possibly offset rendering of the image). Masks must align with the image's
own pixels, so every captured coordinate goes through CoordinateMapper.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple

from FV_Libs.ImageEditingLib.bitmap_models import Point


def coerce_coord(coord: Any) -> Tuple[float, float]:
    """Accept a Point or an (x, y) pair and return floats."""
    if isinstance(coord, Point):
        return (float(coord.x), float(coord.y))
    try:
        x, y = coord
    except (TypeError, ValueError):
        raise TypeError(f"Expected (x, y) coordinate or Point, got {coord!r}")
    return (float(x), float(y))


@dataclass(frozen=True)
class CoordinateMapper:
    """
    Converts display coordinates to native image pixels.

    Attributes:
        native_width: Width of the source image in pixels
        native_height: Height of the source image in pixels
        display_width: Width of the image as currently displayed
        display_height: Height of the image as currently displayed
        display_left: X offset of the displayed image's top-left corner
        display_top: Y offset of the displayed image's top-left corner
    """
    native_width: float
    native_height: float
    display_width: float
    display_height: float
    display_left: float = 0.0
    display_top: float = 0.0

    def __post_init__(self):
        """Validate sizes."""
        for name in ("native_width", "native_height", "display_width", "display_height"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    @classmethod
    def identity(cls, width: float, height: float) -> "CoordinateMapper":
        """Mapper for an image displayed at its native size."""
        return cls(width, height, width, height)

    @property
    def scale_x(self) -> float:
        return self.native_width / self.display_width

    @property
    def scale_y(self) -> float:
        return self.native_height / self.display_height

    def to_native(self, display_coord: Any) -> Point:
        """
        Convert a display coordinate to native pixel space.

        The result is clamped into [0, native_width] x [0, native_height].
        """
        x, y = coerce_coord(display_coord)
        native_x = (x - self.display_left) * self.scale_x
        native_y = (y - self.display_top) * self.scale_y
        return Point(
            min(max(native_x, 0.0), float(self.native_width)),
            min(max(native_y, 0.0), float(self.native_height)),
        )

    def to_display(self, point: Point) -> Tuple[float, float]:
        """Convert a native Point back to display coordinates."""
        return (
            point.x / self.scale_x + self.display_left,
            point.y / self.scale_y + self.display_top,
        )

    def with_display_size(
        self,
        display_width: float,
        display_height: float,
        origin: Optional[Tuple[float, float]] = None,
    ) -> "CoordinateMapper":
        """Return a mapper for a new display size (zoom, resize, DPR change)."""
        left, top = origin if origin is not None else (self.display_left, self.display_top)
        return replace(
            self,
            display_width=display_width,
            display_height=display_height,
            display_left=left,
            display_top=top,
        )
