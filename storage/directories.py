"""
Gallery / thumbnail directory management.

Every category lives twice on disk:

    <SITE_DIR>/gallery/<category>/      originals
    <SITE_DIR>/thumbnail/<category>/    thumbnails

and each of those directories carries a copy of the root's placeholder
stub (index.html by default) so a misconfigured web server lists nothing.
The stub's self-reference (`gallery/index.html`) is rewritten to point at
the copy (`gallery/<category>/index.html`).

All operations either finish completely or raise ProvisioningError.
"""

import logging
import os

from config.settings import Settings
from imaging.errors import InvalidPathError, ProvisioningError
from imaging.paths import is_within, validate_name
from imaging.placeholder import write_placeholder_image

logger = logging.getLogger(__name__)

DIR_MODE = 0o755

DEFAULT_STUB = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>403 Forbidden</title></head>
<body><!-- {self_ref} --><h1>Forbidden</h1></body>
</html>
"""


class DirectoryProvisioner:

    def __init__(self, settings: Settings):
        self._settings = settings

    def _roots(self) -> list[tuple[str, str]]:
        """(absolute root, folder name as written in stub files) for gallery and thumbnails."""
        return [
            (self._settings.gallery_dir, self._settings.GALLERY_FOLDER),
            (self._settings.thumbnail_dir, self._settings.THUMBNAIL_FOLDER),
        ]

    def create_category_dirs(self, name: str) -> bool:
        """
        Create the gallery and thumbnail directories for category `name`
        and seed both with the rewritten stub file.
        """
        try:
            validate_name(name, "create_category_dirs")
        except InvalidPathError as e:
            raise ProvisioningError("create_category_dirs", "Invalid category name", name=repr(name)) from e

        stub_name = self._settings.INDEX_STUB_NAME

        # ── Check everything before touching the disk ───────────
        stubs = []
        for root, folder in self._roots():
            if not os.path.isdir(root) or not os.access(root, os.W_OK):
                raise ProvisioningError(
                    "create_category_dirs", "Parent directory not writable", path=root
                )
            stub_path = os.path.join(root, stub_name)
            if not os.path.isfile(stub_path):
                raise ProvisioningError("create_category_dirs", "Stub file missing", path=stub_path)
            try:
                with open(stub_path, "r", encoding="utf-8") as f:
                    content = f.read()
            except (OSError, UnicodeDecodeError) as e:
                raise ProvisioningError(
                    "create_category_dirs", "Could not read stub file", path=stub_path, error=e
                ) from e

            content = content.replace(f"{folder}/{stub_name}", f"{folder}/{name}/{stub_name}")
            stubs.append((os.path.join(root, name), content))

        # ── Create both directories, then write the stubs ───────
        created: list[str] = []
        for directory, _ in stubs:
            try:
                os.makedirs(directory, mode=DIR_MODE)
                created.append(directory)
            except OSError as e:
                self._rollback(created, stub_name)
                raise ProvisioningError(
                    "create_category_dirs", "Could not create category directory",
                    path=directory, error=e,
                ) from e

        for directory, content in stubs:
            target = os.path.join(directory, stub_name)
            try:
                with open(target, "w", encoding="utf-8") as f:
                    f.write(content)
            except OSError as e:
                self._rollback(created, stub_name)
                raise ProvisioningError(
                    "create_category_dirs", "Could not write stub file", path=target, error=e
                ) from e

        logger.info(f"Created category directories for '{name}'")
        return True

    def remove_directory(self, path: str) -> bool:
        """
        Delete the files directly inside `path`, then `path` itself.

        Only directories strictly inside the gallery or thumbnail root can
        be removed. Subdirectories are not recursed into; their presence
        makes the final rmdir fail.
        """
        path = os.path.realpath(path)
        roots = [os.path.realpath(root) for root, _ in self._roots()]
        if not any(is_within(root, path) and path != root for root in roots):
            raise ProvisioningError("remove_directory", "Directory outside the storage roots", path=path)

        if not os.path.isdir(path):
            raise ProvisioningError("remove_directory", "Directory does not exist", path=path)
        if not os.access(path, os.W_OK):
            raise ProvisioningError("remove_directory", "Directory not writable", path=path)

        for entry in os.scandir(path):
            if entry.is_file(follow_symlinks=False) or entry.is_symlink():
                try:
                    os.remove(entry.path)
                except OSError as e:
                    raise ProvisioningError(
                        "remove_directory", "Could not delete file", path=entry.path, error=e
                    ) from e

        try:
            os.rmdir(path)
        except OSError as e:
            raise ProvisioningError("remove_directory", "Could not delete directory", path=path, error=e) from e

        logger.info(f"Removed directory {path}")
        return True

    def ensure_roots(self) -> None:
        """
        Create the gallery and thumbnail roots with their stub file and the
        no-photo placeholder. Existing files are left alone.
        """
        stub_name = self._settings.INDEX_STUB_NAME
        for root, folder in self._roots():
            try:
                os.makedirs(root, mode=DIR_MODE, exist_ok=True)
            except OSError as e:
                raise ProvisioningError("ensure_roots", "Could not create root", path=root, error=e) from e

            stub_path = os.path.join(root, stub_name)
            if not os.path.exists(stub_path):
                with open(stub_path, "w", encoding="utf-8") as f:
                    f.write(DEFAULT_STUB.format(self_ref=f"{folder}/{stub_name}"))
                logger.info(f"Wrote stub {stub_path}")

            placeholder = os.path.join(root, self._settings.NO_PHOTO_FILE)
            if not os.path.exists(placeholder):
                write_placeholder_image(placeholder)
                logger.info(f"Wrote placeholder {placeholder}")

    @staticmethod
    def _rollback(created: list[str], stub_name: str) -> None:
        """Undo a half-finished create_category_dirs()."""
        for directory in reversed(created):
            stub = os.path.join(directory, stub_name)
            try:
                if os.path.exists(stub):
                    os.remove(stub)
                os.rmdir(directory)
            except OSError as e:
                logger.error(f"Rollback failed for {directory}: {e}")
