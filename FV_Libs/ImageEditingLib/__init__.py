"""
ImageEditingLib - Core pixel models and texture compositing

This module provides the immutable Bitmap/Mask models, the texture
compositing engine, and bitmap file helpers for the Floor Visualizer.
"""

from FV_Libs.ImageEditingLib.bitmap_models import (
    Point,
    Bitmap,
    Mask,
    TextureTile,
    RgbaColor,
)
from FV_Libs.ImageEditingLib.texture_compositing import (
    scale_tile,
    tile_fill,
    apply_mask_clip,
    blend_over,
    composite,
)
from FV_Libs.ImageEditingLib.bitmap_io import (
    load_bitmap,
    load_mask,
    load_texture_file,
    export_bitmap,
    bitmap_to_png_bytes,
)

__all__ = [
    "Point",
    "Bitmap",
    "Mask",
    "TextureTile",
    "RgbaColor",
    "scale_tile",
    "tile_fill",
    "apply_mask_clip",
    "blend_over",
    "composite",
    "load_bitmap",
    "load_mask",
    "load_texture_file",
    "export_bitmap",
    "bitmap_to_png_bytes",
]
