"""
Bitmap loading and export helpers.

Functions:
    load_bitmap: Open an image file as a Bitmap
    load_mask: Open a raster mask file as a Mask
    load_texture_file: Open an image file as a TextureTile
    export_bitmap: Save a Bitmap to disk
    bitmap_to_png_bytes: Encode a Bitmap as PNG bytes
"""

from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image

from FV_Libs.ImageEditingLib.bitmap_models import Bitmap, Mask, TextureTile
from FV_Libs.constants import DEFAULT_OUTPUT_FORMAT

PathLike = Union[str, Path]


def load_bitmap(path: PathLike) -> Bitmap:
    """
    Load an image file as an RGBA Bitmap.

    Raises:
        OSError: If the file cannot be opened or decoded
    """
    with Image.open(path) as image:
        return Bitmap.from_image(image)


def load_mask(path: PathLike) -> Mask:
    """Load a raster mask (alpha or luminance) as a Mask."""
    with Image.open(path) as image:
        return Mask.from_image(image)


def load_texture_file(path: PathLike) -> TextureTile:
    with Image.open(path) as image:
        return TextureTile.from_image(image)


def export_bitmap(bitmap: Bitmap, path: PathLike, format: str = DEFAULT_OUTPUT_FORMAT) -> Path:
    """
    Save a Bitmap to disk.

    Args:
        bitmap: Bitmap to save
        path: Destination file path
        format: Pillow format name (default PNG)

    Returns:
        The path written

    Raises:
        OSError: If the destination directory does not exist
    """
    save_path = Path(path)
    output_dir = save_path.parent

    if not output_dir.exists():
        raise OSError(f"Output directory does not exist: {output_dir}")

    if not output_dir.is_dir():
        raise OSError(f"Output path is not a directory: {output_dir}")

    image = bitmap.to_image()
    if format.upper() in ("JPEG", "JPG"):
        # JPEG has no alpha channel
        image = image.convert("RGB")
    image.save(save_path, format=format)
    return save_path


def bitmap_to_png_bytes(bitmap: Bitmap) -> bytes:
    buffer = BytesIO()
    bitmap.to_image().save(buffer, format="PNG")
    return buffer.getvalue()
