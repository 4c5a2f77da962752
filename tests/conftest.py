"""
Shared test fixtures.

These replace the real site with lightweight stand-ins:
- SITE_DIR → a pytest tmp_path with gallery/ and thumbnail/ roots
- Photos → small images drawn with Pillow on the fly
- HTTP server → httpx.AsyncClient with ASGI transport (no network)

This means tests:
- Run without a web server or a real photo collection
- Only need Pillow; the vips and OpenCV tests skip themselves when
  those libraries aren't installed
- Are fully isolated (each test gets a fresh site directory)
"""

import os
import struct
import zlib

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from PIL import Image

from api.main import create_app
from config.settings import Settings
from storage.directories import DirectoryProvisioner


def _draw_image(path, size=(200, 100), fmt=None, color=(255, 0, 0), mode="RGB") -> str:
    """Draw a solid-colour image at `path` and return the path as a string."""
    path = str(path)
    img = Image.new(mode, size, color=color)
    img.save(path, fmt)
    return path


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)


def _write_png_header(path, width: int, height: int) -> str:
    """
    A tiny, valid-looking PNG whose IHDR claims width x height pixels.

    Only a few dozen bytes on disk, but any decoder that trusts the header
    would try to allocate the full bitmap.
    """
    path = str(path)
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    with open(path, "wb") as f:
        f.write(b"\x89PNG\r\n\x1a\n")
        f.write(_png_chunk(b"IHDR", ihdr))
        f.write(_png_chunk(b"IDAT", zlib.compress(b"")))
        f.write(_png_chunk(b"IEND", b""))
    return path


@pytest.fixture
def make_image():
    """Factory fixture: make_image(path, size=(w, h), fmt="PNG") draws a test image."""
    return _draw_image


@pytest.fixture
def make_png_header():
    """Factory fixture: make_png_header(path, width, height) writes a header-only PNG."""
    return _write_png_header


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings for a site rooted in the test's temp directory."""
    return Settings(
        SITE_DIR=str(tmp_path),
        THUMBNAIL_WIDTH=150,
        THUMBNAIL_HEIGHT=150,
        _env_file=None,
    )


@pytest.fixture
def pillow_settings(tmp_path) -> Settings:
    """Same site, but only the Pillow backend is registered."""
    return Settings(
        SITE_DIR=str(tmp_path),
        ENABLE_VIPS=False,
        ENABLE_OPENCV=False,
        _env_file=None,
    )


@pytest.fixture
def site(settings) -> Settings:
    """A provisioned site: roots, stubs, placeholder and a 'holiday' category."""
    provisioner = DirectoryProvisioner(settings)
    provisioner.ensure_roots()
    provisioner.create_category_dirs("holiday")
    return settings


@pytest.fixture
def gallery_photo(site) -> str:
    """A 400x200 JPEG inside the 'holiday' category."""
    return _draw_image(os.path.join(site.gallery_dir, "holiday", "beach.jpg"), size=(400, 200))


@pytest_asyncio.fixture
async def client(site):
    """
    Create a test HTTP client that talks directly to the FastAPI app.

    The app is built with the temp-site Settings, so every service it
    creates (resizer, streamer, provisioner) works inside tmp_path.

    ASGITransport means requests go directly to the app in-process,
    no HTTP server or network involved.
    """
    app = create_app(site)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
