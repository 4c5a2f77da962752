"""
libvips backend (pyvips) — first choice.

libvips streams the image through a pipeline instead of holding the whole
decoded bitmap, and its Lanczos3 kernel gives the best-looking thumbnails
of the three backends, so it is tried first.

It is also the only backend that reads SVG and HEIC/AVIF. SVG sources are
rasterised and saved as PNG bytes (a vector thumbnail would not be a
thumbnail).

If libvips isn't installed the import fails, the backend reports itself
unavailable and the registry never hands it a job.
"""

import logging
from typing import Optional

from backends.base import AbstractResizeBackend, check_output_size
from config.settings import Settings
from models.enums import BackendName
from models.image import ImageDescriptor, ThumbnailTarget

try:
    import pyvips
except (ImportError, OSError):  # libvips shared library missing
    pyvips = None

logger = logging.getLogger(__name__)


class VipsBackend(AbstractResizeBackend):

    FORMATS = {
        "image/jpeg": "jpeg",
        "image/png": "png",
        "image/gif": "gif",
        "image/webp": "webp",
        "image/tiff": "tiff",
        "image/svg+xml": "svg",
        "image/heic": "heic",
        "image/avif": "avif",
    }

    # tag → (loader nickname, save suffix)
    _CODECS = {
        "jpeg": ("jpegload", ".jpg"),
        "png": ("pngload", ".png"),
        "gif": ("gifload", ".gif"),
        "webp": ("webpload", ".webp"),
        "tiff": ("tiffload", ".tif"),
        "svg": ("svgload", ".png"),
        "heic": ("heifload", ".heic"),
        "avif": ("heifload", ".avif"),
    }

    _SAVE_OPTIONS = {
        "jpeg": "[Q=90,strip]",
        "webp": "[Q=90,strip]",
        "heic": "[Q=90]",
        "avif": "[Q=70]",
    }

    @property
    def name(self) -> str:
        return BackendName.VIPS.value

    @classmethod
    def is_available(cls) -> bool:
        return pyvips is not None

    @classmethod
    def enabled(cls, settings: Settings) -> bool:
        return settings.ENABLE_VIPS

    def _native_formats(self) -> frozenset:
        if pyvips is None:
            return frozenset()
        suffixes = set(pyvips.get_suffixes())
        return frozenset(
            tag for tag, (loader, suffix) in self._CODECS.items()
            if pyvips.type_find("VipsForeignLoad", loader) != 0 and suffix in suffixes
        )

    def probe_size(self, path: str) -> Optional[tuple[int, int]]:
        if pyvips is None:
            return None
        try:
            image = pyvips.Image.new_from_file(path)  # header only, pixels stay lazy
        except pyvips.Error:
            return None
        try:
            return image.width, image.height
        finally:
            del image

    def _render(self, source: ImageDescriptor, target: ThumbnailTarget, tag: str) -> bytes:
        image = None
        resized = None
        try:
            image = pyvips.Image.new_from_file(source.path, access="sequential")
            resized = image.resize(
                target.width / image.width,
                vscale=target.height / image.height,
                kernel="lanczos3",
            )
            check_output_size(self.name, (resized.width, resized.height), target)

            suffix = self._CODECS[tag][1]
            return resized.write_to_buffer(suffix + self._SAVE_OPTIONS.get(tag, ""))
        finally:
            # pyvips frees the native VipsImage when the last reference goes
            del image, resized
