"""
OpenCV backend — second choice.

cv2 decodes from a byte buffer (so a misleading file extension can't steer
the decoder), resizes with INTER_LANCZOS4 and keeps a fourth (alpha)
channel intact with IMREAD_UNCHANGED. JPEG has no alpha, so a BGRA image
headed for JPEG is flattened to BGR first.

No GIF writer in OpenCV, so GIFs fall through to Pillow.
"""

import logging

from backends.base import AbstractResizeBackend, check_output_size
from config.settings import Settings
from models.enums import BackendName
from models.image import ImageDescriptor, ThumbnailTarget

try:
    import cv2
    import numpy as np
except ImportError:
    cv2 = None
    np = None

logger = logging.getLogger(__name__)


class OpenCVBackend(AbstractResizeBackend):

    # MIME → encoder extension understood by cv2.imencode
    FORMATS = {
        "image/jpeg": ".jpg",
        "image/png": ".png",
        "image/webp": ".webp",
        "image/tiff": ".tiff",
        "image/bmp": ".bmp",
    }

    @property
    def name(self) -> str:
        return BackendName.OPENCV.value

    @classmethod
    def is_available(cls) -> bool:
        return cv2 is not None

    @classmethod
    def enabled(cls, settings: Settings) -> bool:
        return settings.ENABLE_OPENCV

    def _native_formats(self) -> frozenset:
        if cv2 is None:
            return frozenset()
        return frozenset(ext for ext in self.FORMATS.values() if cv2.haveImageWriter(f"probe{ext}"))

    def _encode_params(self, ext: str) -> list:
        if ext == ".jpg":
            return [cv2.IMWRITE_JPEG_QUALITY, 90]
        if ext == ".webp":
            return [cv2.IMWRITE_WEBP_QUALITY, 90]
        if ext == ".png":
            return [cv2.IMWRITE_PNG_COMPRESSION, 6]
        return []

    def _render(self, source: ImageDescriptor, target: ThumbnailTarget, tag: str) -> bytes:
        raw = image = resized = encoded = None
        try:
            raw = np.fromfile(source.path, dtype=np.uint8)
            image = cv2.imdecode(raw, cv2.IMREAD_UNCHANGED)
            if image is None:
                raise ValueError(f"OpenCV could not decode {source.path}")

            resized = cv2.resize(
                image, (target.width, target.height), interpolation=cv2.INTER_LANCZOS4
            )
            check_output_size(self.name, (resized.shape[1], resized.shape[0]), target)

            if tag == ".jpg" and resized.ndim == 3 and resized.shape[2] == 4:
                resized = cv2.cvtColor(resized, cv2.COLOR_BGRA2BGR)

            ok, encoded = cv2.imencode(tag, resized, self._encode_params(tag))
            if not ok:
                raise ValueError(f"OpenCV could not encode {tag} for {target.path}")
            return encoded.tobytes()
        finally:
            del raw, image, resized, encoded
