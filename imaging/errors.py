"""
Exception hierarchy for the thumbnail engine.

Two channels, never mixed:
- Recoverable backend outcomes (unsupported format, memory budget, a failed
  encode that was rolled back) are NOT exceptions. Backends return a
  BackendResult and the resizer falls through to the next backend.
- Everything that must stop the caller raises one of the classes below.

Messages follow one layout so a log line tells you where it died:

    "<stage> | <message> | path: /abs/path, width: 6000"
"""

from typing import Optional


class ThumbnailError(RuntimeError):
    """Base class for every fatal error raised by the engine."""

    def __init__(self, stage: str, message: str, path: Optional[str] = None, **context):
        self.stage = stage
        self.path = path
        self.context = context

        details = {"path": path, **context} if path is not None else dict(context)
        text = f"{stage} | {message}"
        if details:
            text += " | " + ", ".join(f"{k}: {v}" for k, v in details.items())
        super().__init__(text)


class InvalidPathError(ThumbnailError, ValueError):
    """Path fails the safety pattern or tries to escape its root."""


class SourceUnavailableError(ThumbnailError):
    """Source image missing, unreadable, or its dimensions can't be read."""


class SourceTooLargeError(ThumbnailError):
    """Source dimensions exceed the hard safety ceiling. Never retried."""


class DestinationNotWritableError(ThumbnailError):
    """Thumbnail directory (or an existing thumbnail) can't be written."""


class BackendsExhaustedError(ThumbnailError):
    """Every available backend was tried and none produced a thumbnail."""

    def __init__(self, stage: str, message: str, path: Optional[str] = None, results=(), **context):
        self.results = list(results)
        super().__init__(
            stage, message, path,
            attempts="; ".join(str(r) for r in self.results) or "none",
            **context,
        )


class ProvisioningError(ThumbnailError):
    """Category directories could not be created or removed."""


class NotReadableError(ThumbnailError):
    """File can't be opened for content sniffing."""


class UnsupportedFormatError(ThumbnailError):
    """File content doesn't match any known image signature."""
