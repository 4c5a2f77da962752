"""
Thumbnail engine configuration (pydantic-settings).

Every key below can be overridden by an environment variable of the same
name (THUMBNAIL_WIDTH=300) or by a line in `.env`. Paths are relative to
SITE_DIR, which defaults to the working directory the API or CLI runs in.

Settings instances are frozen. The app factory and the CLI build one
`Settings` and hand it to every component's constructor (resizer, backends,
provisioner, streamer), so nothing changes underneath a request once it
has started. Tests build their own instance pointing at a temp directory.
"""

import os
import re

from pydantic_settings import BaseSettings

_MEMORY_LIMIT_RE = re.compile(r"^\s*(-?\d+)\s*([KkMmGg]?)\s*$")
_MEMORY_UNITS = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3}


def parse_memory_limit(value: str) -> int:
    """
    Convert a memory ceiling like '128M', '1G', '524288K' or '1048576' to bytes.

    Returns -1 for an unlimited ceiling ('-1').
    Raises ValueError on anything else.
    """
    match = _MEMORY_LIMIT_RE.match(value)
    if match is None:
        raise ValueError(f"Invalid memory limit: '{value}'")

    number, unit = int(match.group(1)), match.group(2).upper()
    if number < 0:
        return -1
    return number * _MEMORY_UNITS[unit]


class Settings(BaseSettings):
    # ── Filesystem ──────────────────────────────────────────────
    SITE_DIR: str = "."
    GALLERY_FOLDER: str = "gallery"      # originals: <SITE_DIR>/gallery/<category>/<file>
    THUMBNAIL_FOLDER: str = "thumbnail"  # thumbnails: <SITE_DIR>/thumbnail/<category>/<file>
    INDEX_STUB_NAME: str = "index.html"  # directory-listing placeholder copied into every category
    NO_PHOTO_FILE: str = "no_foto.png"

    # ── Thumbnails ──────────────────────────────────────────────
    THUMBNAIL_WIDTH: int = 150           # 0 = unconstrained axis
    THUMBNAIL_HEIGHT: int = 150
    MAX_SOURCE_WIDTH: int = 5000         # hard safety ceiling, independent of the target size
    MAX_SOURCE_HEIGHT: int = 5000

    # ── Memory budget ───────────────────────────────────────────
    MEMORY_LIMIT: str = "512M"           # process memory ceiling, '-1' = unlimited
    MEMORY_BUDGET_FRACTION: float = 0.25

    # ── Backends ────────────────────────────────────────────────
    # Pillow has no flag: it is the last resort and is always registered.
    ENABLE_VIPS: bool = True
    ENABLE_OPENCV: bool = True

    # ── Delivery ────────────────────────────────────────────────
    MAX_ATTACH_SIZE: int = 10 * 1024 * 1024
    SITE_URL: str = "http://localhost:8000/"

    # ── App ─────────────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    @property
    def gallery_dir(self) -> str:
        return os.path.join(os.path.abspath(self.SITE_DIR), self.GALLERY_FOLDER)

    @property
    def thumbnail_dir(self) -> str:
        return os.path.join(os.path.abspath(self.SITE_DIR), self.THUMBNAIL_FOLDER)

    @property
    def memory_limit_bytes(self) -> int:
        return parse_memory_limit(self.MEMORY_LIMIT)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True}


# Singleton: the app factory and the CLI start from this one
settings = Settings()
