"""
Pixel data models for Floor Visualizer.

This module defines the immutable value types that flow through the
compositing pipeline.

Classes:
    Point: A coordinate in the native pixel space of a source image
    Bitmap: Read-only RGBA pixel buffer (row-major, shape (H, W, 4))
    Mask: Read-only coverage buffer (shape (H, W), 0=uncovered, 255=covered)
    TextureTile: Small bitmap intended for repeated tiling

Every transformation of these types produces a new instance; the wrapped
numpy arrays are flagged read-only so an accidental in-place write fails.
"""

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from PIL import Image

from FV_Libs.constants import (
    BITMAP_MODE,
    MASK_MODE,
    MAX_COVERAGE,
    OPAQUE_ALPHA,
    PIXEL_CHANNELS,
)

RgbaColor = Tuple[int, int, int, int]


def _readonly(array: np.ndarray) -> np.ndarray:
    view = array.view()
    view.flags.writeable = False
    return view


@dataclass(frozen=True)
class Point:
    """A position in native image pixels."""
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True, eq=False)
class Bitmap:
    """
    Immutable RGBA pixel buffer.

    Attributes:
        pixels: uint8 array of shape (height, width, 4), row-major RGBA.
                The Bitmap takes ownership of the array it is given.
    """
    pixels: np.ndarray

    def __post_init__(self):
        """Validate and freeze the pixel buffer."""
        array = np.asarray(self.pixels)
        if array.dtype != np.uint8:
            raise TypeError(f"Bitmap pixels must be uint8, got {array.dtype}")
        if array.ndim != 3 or array.shape[2] != PIXEL_CHANNELS:
            raise ValueError(
                f"Bitmap pixels must have shape (height, width, 4), got {array.shape}"
            )
        object.__setattr__(self, "pixels", _readonly(np.ascontiguousarray(array)))

    def __reduce__(self):
        return (self.__class__, (np.array(self.pixels),))

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Bitmap):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(
            self.pixels, other.pixels
        )

    __hash__ = None

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @classmethod
    def from_image(cls, image: Any) -> "Bitmap":
        """
        Create a Bitmap from a PIL Image (converted to RGBA).

        Args:
            image: PIL Image in any mode

        Returns:
            New Bitmap holding a copy of the image pixels

        Raises:
            TypeError: If image is not a PIL Image
        """
        if not hasattr(image, "mode"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")
        return cls(np.array(image.convert(BITMAP_MODE), dtype=np.uint8))

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "Bitmap":
        """Create a Bitmap from raw row-major RGBA bytes."""
        expected = width * height * PIXEL_CHANNELS
        if len(data) != expected:
            raise ValueError(
                f"Expected {expected} bytes for {width}x{height} RGBA, got {len(data)}"
            )
        array = np.frombuffer(data, dtype=np.uint8).reshape((height, width, PIXEL_CHANNELS))
        return cls(array.copy())

    @classmethod
    def blank(cls, width: int, height: int, color: RgbaColor = (0, 0, 0, 0)) -> "Bitmap":
        """Create a Bitmap filled with a single color."""
        if width < 0 or height < 0:
            raise ValueError(f"Bitmap size must be non-negative, got {width}x{height}")
        array = np.empty((height, width, PIXEL_CHANNELS), dtype=np.uint8)
        array[:, :] = color
        return cls(array)

    def to_image(self) -> Any:
        """Return a new RGBA PIL Image with this bitmap's pixels."""
        return Image.fromarray(np.array(self.pixels))

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    def getpixel(self, x: int, y: int) -> RgbaColor:
        r, g, b, a = self.pixels[y, x]
        return (int(r), int(g), int(b), int(a))

    def is_opaque(self) -> bool:
        return bool(np.all(self.pixels[:, :, 3] == OPAQUE_ALPHA))

    def __repr__(self) -> str:
        return f"Bitmap(width={self.width}, height={self.height})"


@dataclass(frozen=True, eq=False)
class Mask:
    """
    Immutable coverage buffer aligned 1:1 with a target Bitmap.

    Attributes:
        coverage: uint8 array of shape (height, width)
                  0 = uncovered, 255 = fully covered
    """
    coverage: np.ndarray

    def __post_init__(self):
        """Validate and freeze the coverage buffer."""
        array = np.asarray(self.coverage)
        if array.dtype != np.uint8:
            raise TypeError(f"Mask coverage must be uint8, got {array.dtype}")
        if array.ndim != 2:
            raise ValueError(f"Mask coverage must have shape (height, width), got {array.shape}")
        object.__setattr__(self, "coverage", _readonly(np.ascontiguousarray(array)))

    def __reduce__(self):
        return (self.__class__, (np.array(self.coverage),))

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Mask):
            return NotImplemented
        return self.coverage.shape == other.coverage.shape and np.array_equal(
            self.coverage, other.coverage
        )

    __hash__ = None

    @property
    def width(self) -> int:
        return int(self.coverage.shape[1])

    @property
    def height(self) -> int:
        return int(self.coverage.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @classmethod
    def empty(cls, width: int, height: int) -> "Mask":
        return cls(np.zeros((height, width), dtype=np.uint8))

    @classmethod
    def full(cls, width: int, height: int) -> "Mask":
        return cls(np.full((height, width), MAX_COVERAGE, dtype=np.uint8))

    @classmethod
    def from_image(cls, image: Any) -> "Mask":
        """
        Normalize a raster mask image into coverage values.

        Images carrying a non-opaque alpha band (RGBA, LA, palette with
        transparency) contribute their alpha; everything else contributes
        its luminance, so white-on-black masks work the same way as
        transparent PNG masks.

        Args:
            image: PIL Image in any mode

        Returns:
            New Mask with the same dimensions as the image

        Raises:
            TypeError: If image is not a PIL Image
        """
        if not hasattr(image, "mode"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")

        has_alpha = image.mode in ("RGBA", "LA", "PA") or (
            image.mode == "P" and "transparency" in image.info
        )
        if has_alpha:
            alpha = image.convert(BITMAP_MODE).getchannel("A")
            if alpha.getextrema() != (OPAQUE_ALPHA, OPAQUE_ALPHA):
                return cls(np.array(alpha, dtype=np.uint8))

        return cls(np.array(image.convert(MASK_MODE), dtype=np.uint8))

    @classmethod
    def from_bitmap(cls, bitmap: Bitmap) -> "Mask":
        """Use a Bitmap's alpha channel as coverage."""
        return cls(np.array(bitmap.pixels[:, :, 3]))

    def to_image(self) -> Any:
        """Return a new L-mode PIL Image (255 = covered)."""
        return Image.fromarray(np.array(self.coverage))

    def covered_count(self) -> int:
        """Number of pixels with nonzero coverage."""
        return int(np.count_nonzero(self.coverage))

    def __repr__(self) -> str:
        return f"Mask(width={self.width}, height={self.height})"


@dataclass(frozen=True)
class TextureTile:
    """A small bitmap repeated across the floor region."""
    bitmap: Bitmap

    def __post_init__(self):
        if not isinstance(self.bitmap, Bitmap):
            raise TypeError(f"TextureTile requires a Bitmap, got {type(self.bitmap)}")

    @classmethod
    def from_image(cls, image: Any) -> "TextureTile":
        return cls(Bitmap.from_image(image))

    @property
    def width(self) -> int:
        return self.bitmap.width

    @property
    def height(self) -> int:
        return self.bitmap.height

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0
