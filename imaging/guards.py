"""
Resource and crash-safety guards used by every resize backend.

MemoryBudget
    Refuses a decode whose estimated pixel buffer (width x height x 3 bytes)
    is bigger than a fixed share (25% by default) of the configured process
    memory ceiling. It is a heuristic: codec working buffers and animation
    frames are not counted.

ThumbnailBackup
    Wraps an in-place overwrite of an existing thumbnail:

        with ThumbnailBackup(target.path) as backup:
            write_new_thumbnail()
            backup.commit()

    On enter, an existing thumbnail is renamed to a sibling temp file
    (bak_XXXX). On exit, exactly one of two things happens:
    - commit() was called → the backup is deleted (best effort)
    - anything else       → partial output is removed and the backup is
                            renamed back, byte-for-byte the old file
"""

import logging
import os
import tempfile
from typing import Optional

from config.settings import Settings

logger = logging.getLogger(__name__)

BYTES_PER_PIXEL = 3


class MemoryBudget:

    def __init__(self, settings: Settings):
        self.ceiling = settings.memory_limit_bytes
        self.fraction = settings.MEMORY_BUDGET_FRACTION

    @property
    def limit(self) -> Optional[int]:
        """Bytes one resize may use, or None when the ceiling is unlimited."""
        if self.ceiling < 0:
            return None
        return int(self.ceiling * self.fraction)

    @staticmethod
    def estimate(width: int, height: int) -> int:
        return width * height * BYTES_PER_PIXEL

    def allows(self, width: int, height: int) -> bool:
        limit = self.limit
        return limit is None or self.estimate(width, height) <= limit


class BackupError(OSError):
    """The existing thumbnail could not be moved aside."""


class ThumbnailBackup:

    def __init__(self, thumbnail_path: str):
        self.thumbnail_path = thumbnail_path
        self.backup_path: Optional[str] = None
        self._committed = False
        self._finished = False

    def __enter__(self) -> "ThumbnailBackup":
        if not os.path.exists(self.thumbnail_path):
            return self

        directory = os.path.dirname(self.thumbnail_path)
        try:
            fd, backup_path = tempfile.mkstemp(prefix="bak_", dir=directory)
            os.close(fd)
        except OSError as e:
            raise BackupError(f"Could not create backup file in {directory}: {e}") from e

        try:
            os.replace(self.thumbnail_path, backup_path)
        except OSError as e:
            _remove_quietly(backup_path)
            raise BackupError(f"Could not back up {self.thumbnail_path}: {e}") from e

        self.backup_path = backup_path
        return self

    def commit(self) -> None:
        self._committed = True

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._finished:
            return False
        self._finished = True

        if self._committed and exc_type is None:
            self._discard()
        else:
            self._restore()
        return False

    def _discard(self) -> None:
        if self.backup_path is None:
            return
        try:
            os.remove(self.backup_path)
        except OSError as e:
            # Leaving a stray bak_ file is harmless; losing the new thumbnail is not
            logger.warning(f"Could not delete thumbnail backup {self.backup_path}: {e}")

    def _restore(self) -> None:
        if self.backup_path is None:
            # Nothing to restore; just don't leave a half-written file behind
            _remove_quietly(self.thumbnail_path)
            return
        try:
            os.replace(self.backup_path, self.thumbnail_path)
        except OSError as e:
            logger.error(
                f"Could not restore thumbnail {self.thumbnail_path} "
                f"from backup {self.backup_path}: {e}"
            )
            raise


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
