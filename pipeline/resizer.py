"""
Thumbnail resizer — the fallback chain in front of the backends.

This is the code callers actually use. resize(source, thumbnail) handles
the full lifecycle:

    1. Validate both paths (whitelist, no traversal), canonicalise them
    2. Check the source is there and readable, the destination writable,
       and the source's REAL dimensions under the hard safety ceiling
    3. Compute the target size; an existing thumbnail of exactly that
       size means there is nothing to do
    4. Sniff the source MIME from its content; RAW/vendor formats that are
       only recognised for extension fixing stop here
    5. Walk the registered backends in priority order:
         vips → opencv → pillow
       Any exception or non-success result is logged and the next
       backend gets a go. If the last one fails too, raise.

Errors in steps 1-3 and an exhausted chain are fatal (ThumbnailError
subclasses). A single backend failing is not: that's what the chain is for.

One call runs start to finish in the calling thread. Two requests racing
on the same thumbnail each get their own backup file, so neither can
destroy the other's old thumbnail, but the last writer wins.
"""

import logging
import os
from typing import Optional

from backends.registry import BackendRegistry
from config.settings import Settings
from imaging import sizing
from imaging.errors import (
    BackendsExhaustedError,
    DestinationNotWritableError,
    NotReadableError,
    SourceTooLargeError,
    SourceUnavailableError,
    UnsupportedFormatError,
)
from imaging.formats import FormatResolver, format_info
from imaging.paths import validate_path
from models.image import BackendResult, ImageDescriptor, ThumbnailTarget

logger = logging.getLogger(__name__)


class ThumbnailResizer:

    def __init__(
        self,
        settings: Settings,
        registry: Optional[BackendRegistry] = None,
        resolver: Optional[FormatResolver] = None,
    ):
        self._settings = settings
        self._registry = registry or BackendRegistry.from_settings(settings)
        self._resolver = resolver or FormatResolver()

    @property
    def registry(self) -> BackendRegistry:
        return self._registry

    def resize(self, source_path: str, thumbnail_path: str) -> bool:
        """
        Make sure `thumbnail_path` holds a correctly sized thumbnail of
        `source_path`. Returns True; every failure raises.
        """
        # ── Step 1: path safety ─────────────────────────────────
        source_path = validate_path(source_path, "resize")
        thumbnail_path = validate_path(thumbnail_path, "resize")

        # ── Step 2: source / destination checks ─────────────────
        if not os.path.isfile(source_path) or not os.access(source_path, os.R_OK):
            raise SourceUnavailableError("resize", "Source image missing or unreadable", path=source_path)

        thumbnail_dir = os.path.dirname(thumbnail_path)
        if not os.path.isdir(thumbnail_dir) or not os.access(thumbnail_dir, os.W_OK):
            raise DestinationNotWritableError(
                "resize", "Thumbnail directory not writable", path=thumbnail_dir
            )

        thumbnail_exists = os.path.exists(thumbnail_path)
        if thumbnail_exists and not os.access(thumbnail_path, os.W_OK):
            raise DestinationNotWritableError(
                "resize", "Thumbnail exists but is not writable", path=thumbnail_path
            )

        width, height = self._read_size(source_path)
        self._check_ceiling(source_path, width, height)

        # ── Step 3: target size + idempotent short-circuit ──────
        target_w, target_h = self.target_size(width, height)
        if thumbnail_exists and self._probe(thumbnail_path) == (target_w, target_h):
            logger.debug(f"Thumbnail already up to date: {thumbnail_path}")
            return True

        # ── Step 4: content-sniffed format ──────────────────────
        try:
            mime = self._resolver.resolve(source_path)
        except (NotReadableError, UnsupportedFormatError) as e:
            raise SourceUnavailableError(
                "resize", "Source format not recognised", path=source_path, error=e
            ) from e
        if not format_info(mime).resizable:
            raise UnsupportedFormatError(
                "resize", "Format is recognised but cannot be thumbnailed", path=source_path, mime=mime
            )

        source = ImageDescriptor(path=source_path, mime=mime, width=width, height=height)
        target = ThumbnailTarget(
            path=thumbnail_path, width=target_w, height=target_h, existed=thumbnail_exists
        )
        return self.resize_descriptor(source, target)

    def resize_descriptor(self, source: ImageDescriptor, target: ThumbnailTarget) -> bool:
        """Step 5 on its own, for callers that already inspected the source."""
        results: list[BackendResult] = []
        for backend in self._registry:
            try:
                result = backend.resize(source, target)
            except Exception as e:
                result = BackendResult.encoding_failure(backend.name, f"unexpected error: {e}")

            if result.ok:
                logger.info(
                    f"Thumbnail {target.width}x{target.height} written by {backend.name}: {target.path}"
                )
                return True

            results.append(result)
            logger.warning(
                f"Backend {result} for {source.path} ({source.mime}), trying next"
            )

        raise BackendsExhaustedError(
            "resize",
            "No backend could produce the thumbnail",
            path=source.path,
            results=results,
            thumbnail=target.path,
        )

    def target_size(self, width: int, height: int) -> tuple[int, int]:
        return sizing.calculate(
            width, height, self._settings.THUMBNAIL_WIDTH, self._settings.THUMBNAIL_HEIGHT
        )

    def size_image(self, path: str) -> tuple[int, int]:
        """Thumbnail display size for the image at `path`, without resizing anything."""
        path = validate_path(path, "size_image")
        if not os.path.isfile(path):
            raise SourceUnavailableError("size_image", "Image not found", path=path)
        width, height = self._read_size(path, stage="size_image")
        return self.target_size(width, height)

    def _read_size(self, path: str, stage: str = "resize") -> tuple[int, int]:
        size = self._probe(path)
        if size is None:
            raise SourceUnavailableError(stage, "Could not read image dimensions", path=path)
        return size

    def _probe(self, path: str) -> Optional[tuple[int, int]]:
        # Cheapest header reader first; vips also understands SVG and HEIC
        for backend in reversed(list(self._registry)):
            size = backend.probe_size(path)
            if size is not None:
                return size
        return None

    def _check_ceiling(self, path: str, width: int, height: int) -> None:
        if width > self._settings.MAX_SOURCE_WIDTH or height > self._settings.MAX_SOURCE_HEIGHT:
            raise SourceTooLargeError(
                "resize",
                "Source image dimensions exceed the safety ceiling",
                path=path,
                width=width,
                height=height,
                max_width=self._settings.MAX_SOURCE_WIDTH,
                max_height=self._settings.MAX_SOURCE_HEIGHT,
            )
