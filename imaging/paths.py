"""
Path-safety checks applied before any file is opened.

Paths reaching the engine come from request parameters and from the
database, so they are checked twice: against a conservative character
whitelist, and after canonicalisation against the root they must stay in.
"""

import os
import re
from typing import Optional

from imaging.errors import InvalidPathError

SAFE_PATH_RE = re.compile(r"^[A-Za-z0-9/._-]+$")
SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_path(path: str, stage: str = "validate_path") -> str:
    """
    Check `path` against the whitelist and return its canonical absolute form.

    Rejects empty paths, characters outside [A-Za-z0-9/._-] and any `..`
    component, so traversal attempts fail before the filesystem is touched.
    """
    if not path or not SAFE_PATH_RE.match(path):
        raise InvalidPathError(stage, "Invalid path format", path=repr(path))
    if ".." in path.split("/"):
        raise InvalidPathError(stage, "Path traversal rejected", path=path)
    return os.path.realpath(path)


def validate_name(name: str, stage: str = "validate_name") -> str:
    """A single path segment: no separators, not '.' or '..'."""
    if not name or not SAFE_NAME_RE.match(name) or name in (".", ".."):
        raise InvalidPathError(stage, "Invalid name", name=repr(name))
    return name


def resolve_within(root: str, relative: str, stage: str = "resolve_within") -> str:
    """
    Join a caller-supplied relative path onto `root` and make sure the
    canonical result is still inside it.
    """
    if relative.startswith("/"):
        raise InvalidPathError(stage, "Absolute path not allowed", path=relative)
    candidate = validate_path(os.path.join(root, relative), stage)
    if not is_within(os.path.realpath(root), candidate):
        raise InvalidPathError(stage, "Path escapes its root", path=candidate, root=root)
    return candidate


def is_within(root: str, path: str) -> bool:
    return os.path.commonpath([root, path]) == root


def extension_of(path: str) -> Optional[str]:
    """
    Last suffix of the basename without the dot, or None when there isn't one.

    A leading dot counts: ".png" has no stem and the extension "png".
    """
    name = os.path.basename(path)
    dot = name.rfind(".")
    if dot == -1 or dot == len(name) - 1:
        return None
    return name[dot + 1:]
