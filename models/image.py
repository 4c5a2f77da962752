"""
Data transfer objects passed between the resizer and the backends.

These are plain dataclasses, not ORM models: the core never touches a
database, and keeping them dumb makes every backend testable with a couple
of files in a temp directory.

- ImageDescriptor: what we learned about the source by inspecting it on disk
- ThumbnailTarget: where the thumbnail goes and how big it must be
- BackendResult:   what one backend reports back to the selector
"""

from dataclasses import dataclass
from typing import Optional

from models.enums import BackendOutcome


@dataclass(frozen=True)
class ImageDescriptor:
    """Source image as inspected on disk. Never mutated once built."""
    path: str    # absolute, canonical
    mime: str    # content-sniffed MIME, never the client's or the filename's
    width: int
    height: int


@dataclass
class ThumbnailTarget:
    """
    Output location and size for one resize request.

    `existed` records whether a thumbnail was already on disk when the
    request started. Only the backend that writes the file updates it.
    """
    path: str
    width: int
    height: int
    existed: bool = False


@dataclass(frozen=True)
class BackendResult:
    outcome: BackendOutcome
    backend: str
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is BackendOutcome.SUCCESS

    @classmethod
    def success(cls, backend: str) -> "BackendResult":
        return cls(BackendOutcome.SUCCESS, backend)

    @classmethod
    def unsupported(cls, backend: str, detail: Optional[str] = None) -> "BackendResult":
        return cls(BackendOutcome.UNSUPPORTED_FORMAT, backend, detail)

    @classmethod
    def memory_exceeded(cls, backend: str, detail: Optional[str] = None) -> "BackendResult":
        return cls(BackendOutcome.MEMORY_EXCEEDED, backend, detail)

    @classmethod
    def encoding_failure(cls, backend: str, detail: str) -> "BackendResult":
        return cls(BackendOutcome.ENCODING_FAILURE, backend, detail)

    def __str__(self) -> str:
        text = f"{self.backend}: {self.outcome.value}"
        return f"{text} ({self.detail})" if self.detail else text
