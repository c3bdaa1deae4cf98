"""
Texture Compositing Engine.

Lays a repeating material texture over the covered region of a photograph.
Every step is a pure function over immutable Bitmaps, so the same inputs
always produce the same output bytes.

Pipeline:
    1. scale_tile: enlarge the tile by a fixed factor (grain size)
    2. tile_fill: repeat the scaled tile over the canvas, origin at (0, 0)
    3. apply_mask_clip: multiply tile alpha by mask coverage (destination-in)
    4. blend_over: alpha composite the clipped layer over the original

Example:
    >>> from PIL import Image
    >>> original = Bitmap.from_image(Image.open("room.jpg"))
    >>> mask = Mask.from_image(Image.open("floor_mask.png"))
    >>> tile = TextureTile.from_image(Image.open("oak.png"))
    >>> result = composite(original, mask, tile)
    >>> result.to_image().save("preview.png")
"""

import logging
from typing import Any

import numpy as np
from PIL import Image

from FV_Libs.ImageEditingLib.bitmap_models import Bitmap, Mask, TextureTile
from FV_Libs.constants import MAX_COVERAGE, OPAQUE_ALPHA, TEXTURE_SCALE_FACTOR
from FV_Libs.errors import DimensionMismatchError, EmptyTileError

logger = logging.getLogger(__name__)


def _require(value: Any, expected: type, name: str) -> None:
    if not isinstance(value, expected):
        raise TypeError(f"Expected {expected.__name__} for {name}, got {type(value)}")


def scale_tile(tile: TextureTile, scale_factor: int = TEXTURE_SCALE_FACTOR) -> Bitmap:
    """
    Resample a texture tile to (width * factor, height * factor).

    Args:
        tile: TextureTile to enlarge
        scale_factor: Positive integer multiplier

    Returns:
        Scaled Bitmap (bilinear resampling)

    Raises:
        EmptyTileError: If the tile has zero width or height
        ValueError: If scale_factor is not positive
    """
    _require(tile, TextureTile, "tile")
    if tile.is_empty:
        raise EmptyTileError(f"Texture tile is empty ({tile.width}x{tile.height})")
    if scale_factor < 1:
        raise ValueError(f"scale_factor must be >= 1, got {scale_factor}")

    if scale_factor == 1:
        return tile.bitmap

    target_size = (tile.width * scale_factor, tile.height * scale_factor)
    scaled = tile.bitmap.to_image().resize(target_size, Image.Resampling.BILINEAR)
    return Bitmap.from_image(scaled)


def tile_fill(scaled_tile: Bitmap, width: int, height: int) -> Bitmap:
    """
    Repeat a bitmap with wraparound to cover a (width, height) canvas.

    The pattern origin is the canvas origin; no offset or rotation.
    """
    _require(scaled_tile, Bitmap, "scaled_tile")
    if scaled_tile.width == 0 or scaled_tile.height == 0:
        raise EmptyTileError("Cannot tile an empty bitmap")

    reps_y = -(-height // scaled_tile.height)
    reps_x = -(-width // scaled_tile.width)
    tiled = np.tile(scaled_tile.pixels, (reps_y, reps_x, 1))
    return Bitmap(np.ascontiguousarray(tiled[:height, :width]))


def apply_mask_clip(layer: Bitmap, mask: Mask) -> Bitmap:
    """
    Destination-in clip: scale each pixel's alpha by mask coverage.

    Coverage 0 makes a pixel fully transparent; coverage 255 leaves it
    unchanged; partial coverage attenuates proportionally (rounded).

    Raises:
        DimensionMismatchError: If layer and mask sizes differ
    """
    _require(layer, Bitmap, "layer")
    _require(mask, Mask, "mask")
    if layer.size != mask.size:
        raise DimensionMismatchError(
            f"Mask size {mask.size} does not match layer size {layer.size}"
        )

    alpha = layer.pixels[:, :, 3].astype(np.uint32)
    coverage = mask.coverage.astype(np.uint32)
    clipped_alpha = (alpha * coverage + MAX_COVERAGE // 2) // MAX_COVERAGE

    result = np.array(layer.pixels)
    result[:, :, 3] = clipped_alpha.astype(np.uint8)
    return Bitmap(result)


def blend_over(base: Bitmap, layer: Bitmap) -> Bitmap:
    """
    Porter-Duff "over": composite layer on top of base.

    result_rgb = layer_rgb * a + base_rgb * base_a * (1 - a), normalized by
    the output alpha. Where the layer alpha is 0 the base pixel is kept
    bit-for-bit; where it is 255 the layer pixel replaces the base.

    Raises:
        DimensionMismatchError: If base and layer sizes differ
    """
    _require(base, Bitmap, "base")
    _require(layer, Bitmap, "layer")
    if base.size != layer.size:
        raise DimensionMismatchError(
            f"Layer size {layer.size} does not match base size {base.size}"
        )

    base_px = base.pixels.astype(np.float64)
    layer_px = layer.pixels.astype(np.float64)

    layer_a = layer_px[:, :, 3:4] / OPAQUE_ALPHA
    base_a = base_px[:, :, 3:4] / OPAQUE_ALPHA

    out_a = layer_a + base_a * (1.0 - layer_a)
    weighted = layer_px[:, :, :3] * layer_a + base_px[:, :, :3] * base_a * (1.0 - layer_a)
    out_rgb = np.divide(weighted, out_a, out=np.zeros_like(weighted), where=out_a > 0)

    blended = np.empty(base.pixels.shape, dtype=np.uint8)
    blended[:, :, :3] = np.clip(np.rint(out_rgb), 0, 255).astype(np.uint8)
    blended[:, :, 3] = np.clip(np.rint(out_a[:, :, 0] * OPAQUE_ALPHA), 0, 255).astype(np.uint8)

    untouched = layer.pixels[:, :, 3] == 0
    blended[untouched] = base.pixels[untouched]
    return Bitmap(blended)


def composite(
    original: Bitmap,
    mask: Mask,
    tile: TextureTile,
    scale_factor: int = TEXTURE_SCALE_FACTOR,
) -> Bitmap:
    """
    Apply a tiled texture to the masked region of an image.

    Args:
        original: Photograph to texture (W x H)
        mask: Coverage aligned to the original (W x H)
        tile: Texture tile to repeat
        scale_factor: Tile enlargement factor (default 4)

    Returns:
        New Bitmap (W x H); uncovered pixels equal the original exactly

    Raises:
        DimensionMismatchError: If mask and original sizes differ
        EmptyTileError: If the tile has zero width or height
        TypeError: If inputs have the wrong types
    """
    _require(original, Bitmap, "original")
    _require(mask, Mask, "mask")
    _require(tile, TextureTile, "tile")

    if mask.size != original.size:
        raise DimensionMismatchError(
            f"Mask size {mask.size} does not match image size {original.size}"
        )
    if tile.is_empty:
        raise EmptyTileError(f"Texture tile is empty ({tile.width}x{tile.height})")

    width, height = original.size
    logger.debug(
        f"Compositing {tile.width}x{tile.height} tile (x{scale_factor}) "
        f"onto {width}x{height} image"
    )

    scaled = scale_tile(tile, scale_factor)
    tiled = tile_fill(scaled, width, height)
    clipped = apply_mask_clip(tiled, mask)
    return blend_over(original, clipped)
