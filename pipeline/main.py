"""
Command-line entry point for the thumbnail engine.

Usage:
    python -m pipeline.main resize SRC DST              # one thumbnail
    python -m pipeline.main fix-extension PATH          # print the corrected name
    python -m pipeline.main fix-extension PATH --rename # ...and rename the file
    python -m pipeline.main create-category NAME        # gallery + thumbnail dirs
    python -m pipeline.main setup                       # roots, stubs, placeholder
    python -m pipeline.main backends                    # which backends are usable

Configuration comes from the environment / .env exactly like the API
(SITE_DIR, THUMBNAIL_WIDTH, ENABLE_VIPS, ...).

Exit status is 0 on success and 1 when the operation raised a
ThumbnailError; the error is logged, not printed as a traceback.
"""

import argparse
import json
import logging
import os
import sys
from typing import Optional

from backends.registry import BACKEND_CLASSES, BackendRegistry
from config.logging_setup import configure_logging
from config.settings import Settings, settings as default_settings
from imaging.errors import ThumbnailError
from imaging.formats import FormatResolver
from pipeline.resizer import ThumbnailResizer
from storage.directories import DirectoryProvisioner

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Photo thumbnail engine")
    sub = parser.add_subparsers(dest="command", required=True)

    resize = sub.add_parser("resize", help="Create or refresh one thumbnail")
    resize.add_argument("source", help="Original image")
    resize.add_argument("thumbnail", help="Where the thumbnail goes")

    fix = sub.add_parser("fix-extension", help="Match a file's extension to its content")
    fix.add_argument("path", help="Image file to check")
    fix.add_argument(
        "--rename", action="store_true",
        help="Rename the file instead of only printing the corrected name",
    )

    category = sub.add_parser("create-category", help="Create a category's directories")
    category.add_argument("name", help="Category directory name")

    sub.add_parser("setup", help="Create the gallery/thumbnail roots")
    sub.add_parser("backends", help="Show which resize backends are usable")
    return parser


def _cmd_resize(args, settings: Settings) -> None:
    ThumbnailResizer(settings).resize(args.source, args.thumbnail)
    print(args.thumbnail)


def _cmd_fix_extension(args, settings: Settings) -> None:
    corrected = FormatResolver().correct_extension(args.path)
    original = os.path.realpath(args.path)
    if args.rename and corrected != original:
        os.rename(original, corrected)
        logger.info(f"Renamed {original} to {corrected}")
    print(corrected)


def _cmd_create_category(args, settings: Settings) -> None:
    DirectoryProvisioner(settings).create_category_dirs(args.name)


def _cmd_setup(args, settings: Settings) -> None:
    DirectoryProvisioner(settings).ensure_roots()
    print(settings.gallery_dir)
    print(settings.thumbnail_dir)


def _cmd_backends(args, settings: Settings) -> None:
    registry = BackendRegistry.from_settings(settings)
    report = {
        "backends": [
            {
                "backend": cls.__name__,
                "available": cls.is_available(),
                "enabled": cls.enabled(settings),
            }
            for cls in BACKEND_CLASSES
        ],
        "order": registry.names(),
        "formats": sorted(registry.supported_mimes()),
    }
    print(json.dumps(report, indent=2))


COMMANDS = {
    "resize": _cmd_resize,
    "fix-extension": _cmd_fix_extension,
    "create-category": _cmd_create_category,
    "setup": _cmd_setup,
    "backends": _cmd_backends,
}


def main(argv: Optional[list[str]] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    try:
        COMMANDS[args.command](args, settings)
    except ThumbnailError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
