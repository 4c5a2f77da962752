"""
Abstract base class for resize backends.

Each backend (libvips, OpenCV, Pillow) implements this interface.
The resizer calls backend.resize(source, target) without knowing which
library is underneath. It walks the registry in priority order and falls
through on any non-success result.

Template method pattern:
- resize() = the shared algorithm, identical for every backend
    1. MIME → native format tag (FORMATS table), else UNSUPPORTED_FORMAT
    2. cross-check the library's own compiled-in formats
    3. memory budget check, else MEMORY_EXCEEDED (no decode attempted)
    4. move an existing thumbnail aside (ThumbnailBackup)
    5. _render(): decode, Lanczos resize, encode
    6. success → drop the backup
    7. failure → restore the backup, ENCODING_FAILURE
- _render() / _native_formats() = the only library-specific parts

To add a new backend:
1. Create a class that inherits AbstractResizeBackend
2. Fill FORMATS, implement name, is_available(), _native_formats(), _render()
3. Add it to the registry at the right priority
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from config.settings import Settings
from imaging.guards import BackupError, MemoryBudget, ThumbnailBackup
from models.image import BackendResult, ImageDescriptor, ThumbnailTarget

logger = logging.getLogger(__name__)


class AbstractResizeBackend(ABC):

    # MIME → whatever this backend's library calls the format
    FORMATS: dict = {}

    def __init__(self, settings: Settings):
        self._settings = settings
        self._budget = MemoryBudget(settings)
        self._native_cache: Optional[frozenset] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier matching BackendName (e.g., 'vips', 'pillow')."""
        ...

    @classmethod
    @abstractmethod
    def is_available(cls) -> bool:
        """True when the underlying library imported and can be used."""
        ...

    @classmethod
    def enabled(cls, settings: Settings) -> bool:
        """Config switch. Backends without one are always enabled."""
        return True

    @abstractmethod
    def _native_formats(self) -> frozenset:
        """Format tags the installed library build can both read and write."""
        ...

    @abstractmethod
    def _render(self, source: ImageDescriptor, target: ThumbnailTarget, tag: str) -> bytes:
        """
        Decode the source, resize it to exactly target.width x target.height
        and return the encoded thumbnail.

        Raises:
            Any exception → the thumbnail is rolled back and the backend
            reports ENCODING_FAILURE.
        """
        ...

    def probe_size(self, path: str) -> Optional[tuple[int, int]]:
        """
        Read width/height from the file header. None if this backend can't.

        Raises SourceTooLargeError when the library itself refuses the
        header as too big to open.
        """
        return None

    def native_formats(self) -> frozenset:
        if self._native_cache is None:
            self._native_cache = frozenset(self._native_formats())
        return self._native_cache

    def supports(self, mime: str) -> bool:
        tag = self.FORMATS.get(mime)
        return tag is not None and tag in self.native_formats()

    def estimate_memory(self, width: int, height: int) -> int:
        return self._budget.estimate(width, height)

    def resize(self, source: ImageDescriptor, target: ThumbnailTarget) -> BackendResult:
        # ── Step 1-2: format tables ─────────────────────────────
        tag = self.FORMATS.get(source.mime)
        if tag is None:
            return BackendResult.unsupported(self.name, f"no mapping for {source.mime}")
        if tag not in self.native_formats():
            return BackendResult.unsupported(self.name, f"{tag} not available in this {self.name} build")

        # ── Step 3: memory budget ───────────────────────────────
        if not self._budget.allows(source.width, source.height):
            estimated = self.estimate_memory(source.width, source.height)
            return BackendResult.memory_exceeded(
                self.name,
                f"needs ~{estimated} bytes, budget {self._budget.limit} of {self._settings.MEMORY_LIMIT}",
            )

        # ── Step 4-7: write under the backup guard ──────────────
        try:
            with ThumbnailBackup(target.path) as backup:
                data = self._render(source, target, tag)
                with open(target.path, "wb") as f:
                    f.write(data)
                backup.commit()
        except BackupError as e:
            logger.error(f"[{self.name}] {e}")
            return BackendResult.encoding_failure(self.name, f"backup failed: {e}")
        except Exception as e:
            logger.error(
                f"[{self.name}] Thumbnail failed for {source.path} → {target.path}: {e}"
            )
            return BackendResult.encoding_failure(self.name, str(e) or type(e).__name__)

        target.existed = True
        return BackendResult.success(self.name)


def check_output_size(backend: str, actual: tuple[int, int], target: ThumbnailTarget) -> None:
    """Refuse to write a thumbnail whose size doesn't match the target."""
    if tuple(actual) != (target.width, target.height):
        raise RuntimeError(
            f"{backend} produced {actual[0]}x{actual[1]}, "
            f"expected {target.width}x{target.height}"
        )
