"""
Tests for gallery/thumbnail directory provisioning.

A category is created in both roots or in neither, and each copy of the
stub file points at its own directory.
"""

import os
import stat

import pytest
from PIL import Image

from imaging.errors import ProvisioningError
from storage.directories import DirectoryProvisioner


@pytest.fixture
def provisioner(settings) -> DirectoryProvisioner:
    p = DirectoryProvisioner(settings)
    p.ensure_roots()
    return p


def test_ensure_roots_writes_stub_and_placeholder(settings, provisioner):
    for root in (settings.gallery_dir, settings.thumbnail_dir):
        assert os.path.isfile(os.path.join(root, "index.html"))
        with Image.open(os.path.join(root, "no_foto.png")) as img:
            assert img.size == (150, 150)


def test_ensure_roots_keeps_existing_stub(settings, provisioner):
    stub = os.path.join(settings.gallery_dir, "index.html")
    with open(stub, "w") as f:
        f.write("custom gallery/index.html")

    provisioner.ensure_roots()

    with open(stub) as f:
        assert f.read() == "custom gallery/index.html"


def test_create_category_dirs(settings, provisioner):
    assert provisioner.create_category_dirs("holiday") is True

    for root, folder in ((settings.gallery_dir, "gallery"), (settings.thumbnail_dir, "thumbnail")):
        directory = os.path.join(root, "holiday")
        assert os.path.isdir(directory)
        with open(os.path.join(directory, "index.html")) as f:
            content = f.read()
        assert f"{folder}/holiday/index.html" in content
        assert f"{folder}/index.html" not in content


def test_create_category_twice_fails_cleanly(provisioner):
    provisioner.create_category_dirs("holiday")
    with pytest.raises(ProvisioningError, match="Could not create category directory"):
        provisioner.create_category_dirs("holiday")


@pytest.mark.parametrize("name", ["", "..", "a/b", "../escape", "with space"])
def test_invalid_category_name(provisioner, name):
    with pytest.raises(ProvisioningError, match="Invalid category name"):
        provisioner.create_category_dirs(name)


def test_missing_stub_creates_nothing(settings, provisioner):
    os.remove(os.path.join(settings.thumbnail_dir, "index.html"))

    with pytest.raises(ProvisioningError, match="Stub file missing"):
        provisioner.create_category_dirs("holiday")

    assert not os.path.exists(os.path.join(settings.gallery_dir, "holiday"))
    assert not os.path.exists(os.path.join(settings.thumbnail_dir, "holiday"))


def test_undecodable_stub_creates_nothing(settings, provisioner):
    with open(os.path.join(settings.gallery_dir, "index.html"), "wb") as f:
        f.write(b"\xff\xfe\xfa not utf-8 \xc3\x28")

    with pytest.raises(ProvisioningError, match="Could not read stub file"):
        provisioner.create_category_dirs("holiday")

    assert not os.path.exists(os.path.join(settings.gallery_dir, "holiday"))
    assert not os.path.exists(os.path.join(settings.thumbnail_dir, "holiday"))


def test_half_created_category_is_rolled_back(settings, provisioner):
    """Thumbnail side already taken → the gallery side is removed again."""
    os.mkdir(os.path.join(settings.thumbnail_dir, "holiday"))

    with pytest.raises(ProvisioningError):
        provisioner.create_category_dirs("holiday")

    assert not os.path.exists(os.path.join(settings.gallery_dir, "holiday"))


def test_new_directories_are_0755(settings, provisioner):
    old_umask = os.umask(0o022)
    try:
        provisioner.create_category_dirs("holiday")
    finally:
        os.umask(old_umask)
    mode = stat.S_IMODE(os.stat(os.path.join(settings.gallery_dir, "holiday")).st_mode)
    assert mode == 0o755


def test_remove_directory(settings, provisioner):
    provisioner.create_category_dirs("holiday")
    directory = os.path.join(settings.gallery_dir, "holiday")
    with open(os.path.join(directory, "beach.jpg"), "wb") as f:
        f.write(b"x")

    assert provisioner.remove_directory(directory) is True
    assert not os.path.exists(directory)


def test_remove_directory_refuses_roots_and_outside(settings, provisioner, tmp_path):
    with pytest.raises(ProvisioningError, match="outside"):
        provisioner.remove_directory(settings.gallery_dir)

    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    with pytest.raises(ProvisioningError, match="outside"):
        provisioner.remove_directory(str(elsewhere))
    assert elsewhere.exists()


def test_remove_missing_directory(settings, provisioner):
    with pytest.raises(ProvisioningError, match="does not exist"):
        provisioner.remove_directory(os.path.join(settings.gallery_dir, "ghost"))


def test_remove_directory_with_subdirectory_fails(settings, provisioner):
    provisioner.create_category_dirs("holiday")
    directory = os.path.join(settings.gallery_dir, "holiday")
    os.mkdir(os.path.join(directory, "nested"))

    with pytest.raises(ProvisioningError, match="Could not delete directory"):
        provisioner.remove_directory(directory)
