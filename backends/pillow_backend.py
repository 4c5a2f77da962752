"""
Pillow backend — the last resort.

Pillow ships as a wheel with its codecs built in, so unlike libvips and
OpenCV it is always importable. It is registered unconditionally and the
resizer never skips it: if it can't produce the thumbnail, the whole
request fails.

Mode handling:
- palette images ("P") are expanded to RGBA/RGB first; Pillow only
  resizes them with NEAREST otherwise
- transparency survives for PNG, GIF, WebP, TIFF, ICO and AVIF
- JPEG output is flattened to RGB
"""

import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from backends.base import AbstractResizeBackend, check_output_size
from imaging.errors import SourceTooLargeError
from models.enums import BackendName
from models.image import ImageDescriptor, ThumbnailTarget

logger = logging.getLogger(__name__)

# Modes Pillow can resample with LANCZOS as-is
_RESAMPLABLE_MODES = {"1", "L", "LA", "RGB", "RGBA", "RGBa", "La", "I", "F", "CMYK"}
_JPEG_MODES = {"L", "RGB", "CMYK"}


class PillowBackend(AbstractResizeBackend):

    FORMATS = {
        "image/jpeg": "JPEG",
        "image/png": "PNG",
        "image/gif": "GIF",
        "image/webp": "WEBP",
        "image/tiff": "TIFF",
        "image/bmp": "BMP",
        "image/x-icon": "ICO",
        "image/avif": "AVIF",
    }

    _SAVE_OPTIONS = {
        "JPEG": {"quality": 90, "optimize": True},
        "PNG": {"optimize": True},
        "WEBP": {"quality": 90},
        "AVIF": {"quality": 70},
    }

    @property
    def name(self) -> str:
        return BackendName.PILLOW.value

    @classmethod
    def is_available(cls) -> bool:
        return True

    def _native_formats(self) -> frozenset:
        Image.init()
        return frozenset(tag for tag in self.FORMATS.values() if tag in Image.OPEN and tag in Image.SAVE)

    def probe_size(self, path: str) -> Optional[tuple[int, int]]:
        try:
            with Image.open(path) as img:  # reads the header, no pixel decode
                return img.size
        except Image.DecompressionBombError as e:
            # Pillow refuses to even report the size of a header this big
            raise SourceTooLargeError(
                "probe_size", "Source image dimensions exceed the safety ceiling",
                path=path, error=e,
            ) from e
        except (UnidentifiedImageError, OSError):
            return None

    def _render(self, source: ImageDescriptor, target: ThumbnailTarget, tag: str) -> bytes:
        frame = resized = None
        with Image.open(source.path) as img:
            try:
                frame = _resamplable(img)
                resized = frame.resize((target.width, target.height), Image.Resampling.LANCZOS)
                check_output_size(self.name, resized.size, target)

                if tag == "JPEG" and resized.mode not in _JPEG_MODES:
                    resized = resized.convert("RGB")

                options = dict(self._SAVE_OPTIONS.get(tag, {}))
                if tag == "ICO":
                    options["sizes"] = [resized.size]

                buffer = io.BytesIO()
                resized.save(buffer, format=tag, **options)
                return buffer.getvalue()
            finally:
                for im in (frame, resized):
                    if im is not None and im is not img:
                        im.close()


def _resamplable(img: Image.Image) -> Image.Image:
    if img.mode in _RESAMPLABLE_MODES:
        return img
    has_alpha = img.mode in ("PA", "LA") or "transparency" in img.info or img.mode.endswith("A")
    return img.convert("RGBA" if has_alpha else "RGB")
