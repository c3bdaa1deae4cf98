"""
Error types raised by Floor Visualizer.

Validation-style errors derive from ValueError and pipeline/runtime
failures derive from RuntimeError, so callers that already catch the
builtin types keep working.
"""

from typing import Optional


class FloorVisualizerError(Exception):
    """Base class for all Floor Visualizer errors."""


class ValidationError(FloorVisualizerError, ValueError):
    """Recoverable user-input problem (e.g. too few polygon points)."""


class DimensionMismatchError(FloorVisualizerError, ValueError):
    """Mask and original image do not share the same dimensions."""


class EmptyTileError(FloorVisualizerError, ValueError):
    """Texture tile has zero width or height."""


class MalformedMessageError(FloorVisualizerError, ValueError):
    """A job message does not follow the request/reply schema."""


class RemoteServiceError(FloorVisualizerError, RuntimeError):
    """A remote collaborator (floor detector, texture host) failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class JobError(FloorVisualizerError, RuntimeError):
    """The background context reported a failure for a single request."""

    def __init__(self, message: str, request_id: Optional[str] = None):
        super().__init__(message)
        self.request_id = request_id


class CrashError(FloorVisualizerError, RuntimeError):
    """The background context terminated; every pending request fails."""
