"""
Format resolution by file content.

The MIME type of an uploaded photo is decided by its first bytes, never by
its filename or the Content-Type the client sent. The same table drives:
- extension auto-correction (photo.jpg that is really a PNG → photo.png)
- backend selection in the resizer
- the Content-Type header the asset streamer sends

Vendor/RAW formats (PSD, CR2, NEF, ...) are recognised so their extension
can be fixed, but they are not resizable.
"""

import logging
import os
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional

from imaging.errors import NotReadableError, UnsupportedFormatError
from imaging.paths import extension_of, validate_path

logger = logging.getLogger(__name__)

SNIFF_BYTES = 4096


@dataclass(frozen=True)
class FormatInfo:
    tag: str                     # short format tag, e.g. "JPEG"
    extension: str               # canonical extension without the dot
    aliases: tuple = ()          # other extensions that also count as correct
    resizable: bool = True


FORMAT_TABLE = MappingProxyType({
    "image/jpeg": FormatInfo("JPEG", "jpg", ("jpeg", "jpe")),
    "image/png": FormatInfo("PNG", "png"),
    "image/gif": FormatInfo("GIF", "gif"),
    "image/webp": FormatInfo("WEBP", "webp"),
    "image/tiff": FormatInfo("TIFF", "tiff", ("tif",)),
    "image/svg+xml": FormatInfo("SVG", "svg"),
    "image/bmp": FormatInfo("BMP", "bmp", ("dib",)),
    "image/x-icon": FormatInfo("ICO", "ico"),
    "image/avif": FormatInfo("AVIF", "avif"),
    "image/heic": FormatInfo("HEIC", "heic", ("heif",)),
    # Recognised for extension correction only
    "image/vnd.adobe.photoshop": FormatInfo("PSD", "psd", resizable=False),
    "image/x-canon-cr2": FormatInfo("CR2", "cr2", resizable=False),
    "image/x-nikon-nef": FormatInfo("NEF", "nef", resizable=False),
    "image/x-xbitmap": FormatInfo("XBM", "xbm", resizable=False),
    "image/x-portable-anymap": FormatInfo("PNM", "pnm", ("pbm", "pgm", "ppm"), resizable=False),
    "image/x-pcx": FormatInfo("PCX", "pcx", resizable=False),
})

# ISO-BMFF brands (bytes 8..12 after "ftyp")
_AVIF_BRANDS = {b"avif", b"avis"}
_HEIC_BRANDS = {b"heic", b"heix", b"heim", b"heis", b"hevc", b"hevx", b"mif1", b"msf1"}

_PNM_RE = re.compile(rb"^P[1-7]\s")
_XBM_RE = re.compile(rb"^\s*#define\s+\S+_width\s+\d+")
_SVG_RE = re.compile(rb"<svg[\s>]", re.IGNORECASE)


def sniff_mime(head: bytes) -> Optional[str]:
    """
    Match the first bytes of a file against known image signatures.

    Returns the canonical MIME type, or None when nothing matches.
    """
    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if head[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"

    if head[:4] in (b"II*\x00", b"MM\x00*"):
        # CR2 and NEF are TIFF containers; tell them apart before plain TIFF
        if head[8:10] == b"CR":
            return "image/x-canon-cr2"
        if b"NIKON" in head[:1024]:
            return "image/x-nikon-nef"
        return "image/tiff"

    if head[4:8] == b"ftyp":
        brand = head[8:12]
        if brand in _AVIF_BRANDS:
            return "image/avif"
        if brand in _HEIC_BRANDS:
            return "image/heic"

    if head.startswith(b"BM") and len(head) >= 14:
        return "image/bmp"
    if head[:4] == b"\x00\x00\x01\x00":
        return "image/x-icon"
    if head[:4] == b"8BPS":
        return "image/vnd.adobe.photoshop"
    if len(head) >= 3 and head[0] == 0x0A and head[1] in (0, 2, 3, 4, 5) and head[2] == 1:
        return "image/x-pcx"
    if _PNM_RE.match(head):
        return "image/x-portable-anymap"
    if _XBM_RE.match(head):
        return "image/x-xbitmap"

    text = head.lstrip(b"\xef\xbb\xbf \t\r\n")
    if text.startswith(b"<") and _SVG_RE.search(text):
        return "image/svg+xml"
    return None


class FormatResolver:
    """Content-based MIME detection plus extension correction."""

    def resolve(self, path: str) -> str:
        """
        Return the canonical MIME type of the file at `path`.

        Raises:
            NotReadableError: file missing, not a regular file, or unreadable
            UnsupportedFormatError: content matches no known image signature
        """
        if not os.path.isfile(path):
            raise NotReadableError("resolve", "File not found", path=path)
        try:
            with open(path, "rb") as f:
                head = f.read(SNIFF_BYTES)
        except OSError as e:
            raise NotReadableError("resolve", "File not readable", path=path, error=e) from e

        mime = sniff_mime(head)
        if mime is None:
            raise UnsupportedFormatError("resolve", "Unsupported file content", path=path)
        return mime

    def correct_extension(self, path: str) -> str:
        """
        Return `path` with the extension its content calls for.

        The file is not renamed here; the caller does that if it wants to.
        A file whose extension already matches comes back unchanged
        (canonicalised).
        """
        normalized = validate_path(path, "correct_extension")
        if not os.path.isfile(normalized):
            raise NotReadableError("correct_extension", "File not found", path=normalized)
        if not os.access(normalized, os.R_OK):
            raise NotReadableError("correct_extension", "File not readable", path=normalized)

        mime = self.resolve(normalized)
        info = FORMAT_TABLE[mime]
        current = extension_of(normalized)

        if current is None:
            corrected = f"{normalized}.{info.extension}"
            logger.info(f"Added extension '{info.extension}' to {normalized}")
            return corrected

        if current.lower() in (info.extension, *info.aliases):
            return normalized

        corrected = normalized[: -len(current)] + info.extension
        logger.info(f"Corrected file extension: {normalized} → {corrected}")
        return corrected


def format_info(mime: str) -> FormatInfo:
    """Table lookup that raises UnsupportedFormatError instead of KeyError."""
    info = FORMAT_TABLE.get(mime)
    if info is None:
        raise UnsupportedFormatError("format_info", "Unknown MIME type", mime=mime)
    return info
