"""
Tests for the Pillow backend — the last resort.

These always run: Pillow is a hard dependency.
"""

import os

import pytest
from PIL import Image

from backends.pillow_backend import PillowBackend
from config.settings import Settings
from imaging import guards
from imaging.errors import SourceTooLargeError
from models.enums import BackendOutcome
from models.image import ImageDescriptor, ThumbnailTarget


@pytest.fixture
def backend(pillow_settings) -> PillowBackend:
    return PillowBackend(pillow_settings)


def _descriptor(path, mime, size) -> ImageDescriptor:
    return ImageDescriptor(path=str(path), mime=mime, width=size[0], height=size[1])


@pytest.mark.parametrize("fmt,mime,ext", [
    ("JPEG", "image/jpeg", "jpg"),
    ("PNG", "image/png", "png"),
    ("GIF", "image/gif", "gif"),
    ("BMP", "image/bmp", "bmp"),
])
def test_resizes_to_exact_target(backend, tmp_path, make_image, fmt, mime, ext):
    source = make_image(tmp_path / f"src.{ext}", size=(400, 200), fmt=fmt)
    target = ThumbnailTarget(path=str(tmp_path / f"thumb.{ext}"), width=150, height=75)

    result = backend.resize(_descriptor(source, mime, (400, 200)), target)

    assert result.outcome is BackendOutcome.SUCCESS
    assert result.backend == "pillow"
    assert target.existed is True
    with Image.open(target.path) as thumb:
        assert thumb.size == (150, 75)
        assert thumb.format == fmt


def test_png_keeps_transparency(backend, tmp_path, make_image):
    source = make_image(tmp_path / "src.png", size=(300, 300), fmt="PNG", mode="RGBA", color=(0, 0, 255, 0))
    target = ThumbnailTarget(path=str(tmp_path / "thumb.png"), width=150, height=150)

    assert backend.resize(_descriptor(source, "image/png", (300, 300)), target).ok
    with Image.open(target.path) as thumb:
        assert thumb.mode == "RGBA"
        assert thumb.getpixel((10, 10))[3] == 0


def test_palette_image_is_expanded(backend, tmp_path, make_image):
    source = make_image(tmp_path / "src.gif", size=(300, 150), fmt="GIF", mode="P", color=3)
    target = ThumbnailTarget(path=str(tmp_path / "thumb.gif"), width=150, height=75)

    assert backend.resize(_descriptor(source, "image/gif", (300, 150)), target).ok


def test_unmapped_mime_is_unsupported(backend, tmp_path):
    target = ThumbnailTarget(path=str(tmp_path / "thumb.svg"), width=150, height=150)
    result = backend.resize(_descriptor(tmp_path / "src.svg", "image/svg+xml", (300, 300)), target)

    assert result.outcome is BackendOutcome.UNSUPPORTED_FORMAT
    assert not os.path.exists(target.path)


def test_memory_budget_refuses_before_decoding(tmp_path):
    # 1K ceiling → 256 byte budget; a 100x100 source needs 30000
    backend = PillowBackend(Settings(MEMORY_LIMIT="1K", _env_file=None))
    target = ThumbnailTarget(path=str(tmp_path / "thumb.png"), width=50, height=50)

    result = backend.resize(_descriptor(tmp_path / "never-opened.png", "image/png", (100, 100)), target)

    assert result.outcome is BackendOutcome.MEMORY_EXCEEDED
    assert "budget" in result.detail


def test_corrupt_source_restores_existing_thumbnail(backend, tmp_path):
    source = tmp_path / "src.png"
    source.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64)
    thumb = tmp_path / "thumb.png"
    thumb.write_bytes(b"previous thumbnail")
    target = ThumbnailTarget(path=str(thumb), width=150, height=150, existed=True)

    result = backend.resize(_descriptor(source, "image/png", (300, 300)), target)

    assert result.outcome is BackendOutcome.ENCODING_FAILURE
    assert thumb.read_bytes() == b"previous thumbnail"
    assert [p.name for p in tmp_path.iterdir() if p.name.startswith("bak_")] == []


def test_probe_size(backend, tmp_path, make_image):
    source = make_image(tmp_path / "src.jpg", size=(321, 123), fmt="JPEG")
    assert backend.probe_size(source) == (321, 123)
    assert backend.probe_size(str(tmp_path / "missing.jpg")) is None


def test_always_available_and_supports_the_basics(backend):
    assert PillowBackend.is_available()
    for mime in ("image/jpeg", "image/png", "image/gif"):
        assert backend.supports(mime)


def test_header_too_big_to_open_raises_too_large(backend, tmp_path, make_png_header):
    bomb = make_png_header(tmp_path / "bomb.png", 20000, 20000)
    with pytest.raises(SourceTooLargeError, match="safety ceiling"):
        backend.probe_size(bomb)


def _fail(*args, **kwargs):
    raise OSError(28, "No space left on device")


def _assert_backup_failure_left_thumbnail_alone(result, thumb, tmp_path):
    assert result.outcome is BackendOutcome.ENCODING_FAILURE
    assert result.detail.startswith("backup failed")
    assert thumb.read_bytes() == b"previous thumbnail"
    assert [p.name for p in tmp_path.iterdir() if p.name.startswith("bak_")] == []


def test_backup_file_cannot_be_created(backend, tmp_path, make_image, monkeypatch):
    """If the old thumbnail can't be moved aside, nothing is written over it."""
    source = make_image(tmp_path / "src.png", size=(300, 300), fmt="PNG")
    thumb = tmp_path / "thumb.png"
    thumb.write_bytes(b"previous thumbnail")
    monkeypatch.setattr(guards.tempfile, "mkstemp", _fail)

    target = ThumbnailTarget(path=str(thumb), width=150, height=150, existed=True)
    result = backend.resize(_descriptor(source, "image/png", (300, 300)), target)

    _assert_backup_failure_left_thumbnail_alone(result, thumb, tmp_path)


def test_backup_rename_fails(backend, tmp_path, make_image, monkeypatch):
    """mkstemp worked but the rename didn't: the empty bak_ file is cleaned up."""
    source = make_image(tmp_path / "src.png", size=(300, 300), fmt="PNG")
    thumb = tmp_path / "thumb.png"
    thumb.write_bytes(b"previous thumbnail")
    monkeypatch.setattr(guards.os, "replace", _fail)

    target = ThumbnailTarget(path=str(thumb), width=150, height=150, existed=True)
    result = backend.resize(_descriptor(source, "image/png", (300, 300)), target)

    _assert_backup_failure_left_thumbnail_alone(result, thumb, tmp_path)
