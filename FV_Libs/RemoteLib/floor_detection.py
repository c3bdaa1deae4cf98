"""
Remote floor detection client.

The detection service takes a photograph and answers with a raster mask
image. This module only moves bytes and normalizes the answer into a Mask;
no detection happens locally.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Tuple

import requests
from PIL import Image

from FV_Libs.ImageEditingLib.bitmap_io import bitmap_to_png_bytes
from FV_Libs.ImageEditingLib.bitmap_models import Bitmap, Mask
from FV_Libs.constants import (
    DETECTION_ENDPOINT,
    DETECTION_FALLBACK_MESSAGE,
    DETECTION_FIELD_NAME,
    DETECTION_TIMEOUT_SECONDS,
)
from FV_Libs.errors import RemoteServiceError

logger = logging.getLogger(__name__)


def _encode_upload(image: Any) -> Tuple[str, bytes, str]:
    """Return (filename, data, content_type) for the multipart upload."""
    if isinstance(image, Bitmap):
        return ("image.png", bitmap_to_png_bytes(image), "image/png")

    if isinstance(image, (str, Path)):
        path = Path(image)
        return (path.name, path.read_bytes(), "application/octet-stream")

    if isinstance(image, (bytes, bytearray)):
        return ("image", bytes(image), "application/octet-stream")

    if hasattr(image, "save"):
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return ("image.png", buffer.getvalue(), "image/png")

    raise TypeError(f"Unsupported image type for floor detection: {type(image)}")


def detect_floor(
    image: Any,
    endpoint: str = DETECTION_ENDPOINT,
    session: Optional[requests.Session] = None,
    timeout: float = DETECTION_TIMEOUT_SECONDS,
) -> Mask:
    """
    Ask the remote service for a floor mask.

    Args:
        image: PIL Image, Bitmap, file path, or encoded image bytes
        endpoint: Detection endpoint URL
        session: Optional requests.Session (module-level requests if None)
        timeout: Request timeout in seconds

    Returns:
        Mask decoded from the service's raster response

    Raises:
        RemoteServiceError: On transport failure, a non-2xx status (message
                            is the response body, the reason phrase, or a
                            generic fallback) or an undecodable body
        TypeError: If image has an unsupported type
    """
    filename, data, content_type = _encode_upload(image)
    http = session if session is not None else requests

    logger.debug(f"Posting {len(data)} bytes to floor detection endpoint {endpoint}")
    try:
        response = http.post(
            endpoint,
            files={DETECTION_FIELD_NAME: (filename, data, content_type)},
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.error(f"Error detecting floor: {e}")
        raise RemoteServiceError(f"Floor detection request failed: {e}") from e

    if not response.ok:
        error_text = (response.text or "").strip() or response.reason or DETECTION_FALLBACK_MESSAGE
        logger.error(f"Error detecting floor: HTTP {response.status_code}: {error_text}")
        raise RemoteServiceError(error_text, status_code=response.status_code)

    try:
        with Image.open(BytesIO(response.content)) as mask_image:
            mask = Mask.from_image(mask_image)
    except OSError as e:
        logger.error(f"Error detecting floor: unreadable mask image: {e}")
        raise RemoteServiceError("Floor detection returned an unreadable mask image") from e

    logger.info(f"Floor detection returned a {mask.width}x{mask.height} mask")
    return mask
