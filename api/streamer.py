"""
Asset streamer — sends one image file as one HTTP response.

send(path, display_name) returns the final Response for the request:

    404  file missing / not a regular file / unreadable
    500  content is not a recognised image (MIME re-sniffed here, never
         taken from the caller) or the file can't be opened
    413  file bigger than MAX_ATTACH_SIZE (10 MiB by default)
    200  body streamed in chunks with hardened headers

The Content-Disposition filename is sanitised (tags stripped, HTML
escaped, control characters dropped) because display names come from
user input.
"""

import html
import logging
import os
import re
from typing import BinaryIO, Iterator
from urllib.parse import quote

from fastapi.responses import Response, StreamingResponse

from config.settings import Settings
from imaging.errors import NotReadableError, UnsupportedFormatError
from imaging.formats import FormatResolver

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'self'; img-src 'self' data:;",
}

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_display_name(name: str, fallback: str = "image") -> str:
    """Make a user-supplied name safe to put inside a quoted header value."""
    cleaned = _CONTROL_RE.sub("", _TAG_RE.sub("", name or "")).strip()
    cleaned = html.escape(cleaned, quote=True)
    return cleaned or fallback


def content_disposition(display_name: str) -> str:
    """
    inline; filename="..." with an RFC 5987 filename* added when the name
    isn't plain ASCII (HTTP headers are latin-1 on the wire).
    """
    ascii_name = display_name.encode("ascii", "ignore").decode("ascii") or "image"
    value = f'inline; filename="{ascii_name}"'
    if ascii_name != display_name:
        value += f"; filename*=UTF-8''{quote(display_name, safe='')}"
    return value


def _iter_file(handle: BinaryIO) -> Iterator[bytes]:
    try:
        while chunk := handle.read(CHUNK_SIZE):
            yield chunk
    finally:
        handle.close()


class AssetStreamer:

    def __init__(self, settings: Settings, resolver: FormatResolver = None):
        self._max_size = settings.MAX_ATTACH_SIZE
        self._resolver = resolver or FormatResolver()

    def send(self, path: str, display_name: str) -> Response:
        # ── Existence / readability → 404 ───────────────────────
        if not os.path.isfile(path) or not os.access(path, os.R_OK):
            logger.warning(f"Attach: file not found or unreadable: {path}")
            return Response(status_code=404)

        # ── Content-sniffed MIME → 500 if not an image ──────────
        try:
            mime = self._resolver.resolve(path)
        except (NotReadableError, UnsupportedFormatError) as e:
            logger.error(f"Attach: could not determine image type of {path}: {e}")
            return Response(status_code=500)
        if not mime.startswith("image/"):
            logger.error(f"Attach: not an image ({mime}): {path}")
            return Response(status_code=500)

        # ── Size ceiling → 413 ──────────────────────────────────
        try:
            size = os.path.getsize(path)
        except OSError as e:
            logger.error(f"Attach: could not stat {path}: {e}")
            return Response(status_code=413)
        if size > self._max_size:
            logger.warning(f"Attach: file too large ({size} bytes > {self._max_size}): {path}")
            return Response(status_code=413)

        # ── Open before committing to a 200 ─────────────────────
        try:
            handle = open(path, "rb")
        except OSError as e:
            logger.error(f"Attach: could not open {path}: {e}")
            return Response(status_code=500)

        name = sanitize_display_name(display_name, fallback=os.path.basename(path))
        headers = {
            "Content-Disposition": content_disposition(name),
            "Content-Length": str(size),
            **SECURITY_HEADERS,
        }
        return StreamingResponse(_iter_file(handle), media_type=mime, headers=headers)
