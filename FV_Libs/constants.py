"""
Constants and configuration values for Floor Visualizer.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the application.
"""

# Compositing constants
TEXTURE_SCALE_FACTOR = 4
MAX_COVERAGE = 255
OPAQUE_ALPHA = 255
PIXEL_CHANNELS = 4
BITMAP_MODE = "RGBA"
MASK_MODE = "L"

# Polygon capture
MIN_POLYGON_POINTS = 3

# Job dispatch message types
MESSAGE_APPLY_TEXTURE = "APPLY_TEXTURE"
MESSAGE_SUCCESS = "SUCCESS"
MESSAGE_ERROR = "ERROR"

# Job dispatch message field names
FIELD_TYPE = "type"
FIELD_ID = "id"
FIELD_PAYLOAD = "payload"
FIELD_ORIGINAL_IMAGE = "originalImage"
FIELD_FLOOR_MASK = "floorMask"
FIELD_TEXTURE_IMAGE = "textureImage"

# Background execution backends
BACKEND_PROCESS = "process"
BACKEND_THREAD = "thread"
SUPPORTED_BACKENDS = {BACKEND_PROCESS, BACKEND_THREAD}
DEFAULT_BACKEND = BACKEND_PROCESS

# Error texts
CRASH_MESSAGE = "Background context crashed or encountered a critical error."
UNKNOWN_JOB_FAILURE = "An unknown error occurred in the background context."
DETECTION_FALLBACK_MESSAGE = "Failed to detect floor."

# Remote collaborators
DETECTION_ENDPOINT = "https://vis-worker-backend.atootikhos.workers.dev/api/detect"
DETECTION_FIELD_NAME = "image"
DETECTION_TIMEOUT_SECONDS = 60.0
TEXTURE_FETCH_TIMEOUT_SECONDS = 30.0
HTTP_SCHEMES = {"http", "https"}

# File output
DEFAULT_OUTPUT_FORMAT = "PNG"

# Logging
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LOG_LEVEL = "INFO"
