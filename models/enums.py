"""
Outcome and backend names shared by the backends, the resizer and the API.

Both are str-enums, so a BackendResult logs as "opencv: memory_exceeded"
and /health can return backend names as plain JSON strings.
"""

import enum


class BackendOutcome(str, enum.Enum):
    SUCCESS = "success"                        # thumbnail written with the target dimensions
    UNSUPPORTED_FORMAT = "unsupported_format"  # backend (or its library build) can't handle this MIME
    MEMORY_EXCEEDED = "memory_exceeded"        # estimated pixel buffer over the memory budget
    ENCODING_FAILURE = "encoding_failure"      # decode/resize/encode blew up, old thumbnail restored


class BackendName(str, enum.Enum):
    # Declaration order is the fallback priority order
    VIPS = "vips"        # libvips via pyvips
    OPENCV = "opencv"    # OpenCV via opencv-python-headless
    PILLOW = "pillow"    # Pillow, the always-available last resort
