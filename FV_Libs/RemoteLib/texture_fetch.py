"""
Texture resource loading.

A texture is addressed by a URL-like handle: http(s) URLs are downloaded,
file:// URIs and plain paths are read from disk.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse

import requests
from PIL import Image

from FV_Libs.ImageEditingLib.bitmap_models import TextureTile
from FV_Libs.constants import HTTP_SCHEMES, TEXTURE_FETCH_TIMEOUT_SECONDS
from FV_Libs.errors import RemoteServiceError

logger = logging.getLogger(__name__)


def _download(url: str, session: Any, timeout: float) -> bytes:
    http = session if session is not None else requests
    try:
        response = http.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise RemoteServiceError(f"Failed to fetch texture {url}: {e}") from e

    if not response.ok:
        reason = response.reason or "request failed"
        raise RemoteServiceError(
            f"Failed to fetch texture {url}: HTTP {response.status_code} {reason}",
            status_code=response.status_code,
        )
    return response.content


def load_texture_tile(
    handle: Any,
    session: Optional[requests.Session] = None,
    timeout: float = TEXTURE_FETCH_TIMEOUT_SECONDS,
) -> TextureTile:
    """
    Load a texture tile from a URL, file:// URI or filesystem path.

    Args:
        handle: URL string, file URI, or path
        session: Optional requests.Session used for http(s) handles
        timeout: Download timeout in seconds

    Returns:
        TextureTile with the decoded image

    Raises:
        RemoteServiceError: If the texture cannot be fetched or decoded
    """
    handle_text = str(handle)
    parsed = urlparse(handle_text)

    if parsed.scheme in HTTP_SCHEMES:
        logger.debug(f"Downloading texture {handle_text}")
        source = BytesIO(_download(handle_text, session, timeout))
    elif parsed.scheme == "file":
        source = Path(unquote(parsed.path))
    else:
        source = Path(handle_text)

    try:
        with Image.open(source) as image:
            return TextureTile.from_image(image)
    except OSError as e:
        logger.error(f"Unreadable texture {handle_text}: {e}")
        raise RemoteServiceError(f"Failed to load texture {handle_text}: {e}") from e
