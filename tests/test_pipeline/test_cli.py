"""Tests for the `python -m pipeline.main` command line."""

import json
import os

import pytest
from PIL import Image

from pipeline.main import main


@pytest.fixture(autouse=True)
def no_log_listener(monkeypatch):
    """Leave the root logger to pytest's own capture."""
    monkeypatch.setattr("pipeline.main.configure_logging", lambda level: None)


def test_setup_then_create_category(pillow_settings, capsys):
    assert main(["setup"], settings=pillow_settings) == 0
    assert main(["create-category", "holiday"], settings=pillow_settings) == 0

    assert os.path.isdir(os.path.join(pillow_settings.gallery_dir, "holiday"))
    assert os.path.isdir(os.path.join(pillow_settings.thumbnail_dir, "holiday"))
    assert pillow_settings.gallery_dir in capsys.readouterr().out


def test_create_category_failure_exits_1(pillow_settings):
    # Roots were never set up
    assert main(["create-category", "holiday"], settings=pillow_settings) == 1


def test_resize(pillow_settings, tmp_path, make_image):
    source = make_image(tmp_path / "big.jpg", size=(900, 300), fmt="JPEG")
    thumb = str(tmp_path / "small.jpg")

    assert main(["resize", source, thumb], settings=pillow_settings) == 0
    with Image.open(thumb) as img:
        assert img.size == (150, 50)


def test_resize_rejects_traversal(pillow_settings, tmp_path):
    assert main(["resize", "../../etc/passwd", str(tmp_path / "t.jpg")], settings=pillow_settings) == 1


def test_fix_extension_prints_without_renaming(pillow_settings, tmp_path, make_image, capsys):
    path = make_image(tmp_path / "photo.jpg", fmt="PNG")

    assert main(["fix-extension", path], settings=pillow_settings) == 0
    assert capsys.readouterr().out.strip() == str(tmp_path / "photo.png")
    assert os.path.exists(path)


def test_fix_extension_rename(pillow_settings, tmp_path, make_image):
    path = make_image(tmp_path / "photo.jpg", fmt="PNG")

    assert main(["fix-extension", path, "--rename"], settings=pillow_settings) == 0
    assert not os.path.exists(path)
    assert os.path.exists(tmp_path / "photo.png")


def test_backends_report(pillow_settings, capsys):
    assert main(["backends"], settings=pillow_settings) == 0
    report = json.loads(capsys.readouterr().out)
    rows = {row["backend"]: row for row in report["backends"]}
    assert rows["PillowBackend"]["available"] is True
    assert rows["VipsBackend"]["enabled"] is False
    assert report["order"] == ["pillow"]
    assert {"image/jpeg", "image/png", "image/gif"} <= set(report["formats"])
