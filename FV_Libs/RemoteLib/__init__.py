"""
RemoteLib - External collaborators

This module talks to the remote floor-detection service and loads texture
resources addressed by URL or path.
"""

from FV_Libs.RemoteLib.floor_detection import detect_floor
from FV_Libs.RemoteLib.texture_fetch import load_texture_tile

__all__ = [
    "detect_floor",
    "load_texture_tile",
]
