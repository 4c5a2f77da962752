"""
Photo delivery endpoint.

GET /attach?file=<category/file>&thumbnail=<0|1>

    thumbnail=0   stream the original from the gallery root
    thumbnail=1   (re)build the thumbnail if needed, then stream it

`file` is relative to the gallery root. It is checked against the path
whitelist and must stay inside the root once canonicalised, otherwise the
request is rejected with 400 before anything is read.

A file that doesn't exist degrades to the no-photo placeholder instead of
an error, so pages keep rendering when an upload goes missing.

Both handlers are plain `def`: resizing and file streaming are blocking,
so Starlette runs them in its threadpool.
"""

import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from api.dependencies import get_resizer, get_settings, get_streamer
from api.streamer import AssetStreamer
from config.settings import Settings
from imaging.errors import InvalidPathError, ThumbnailError
from imaging.paths import resolve_within
from pipeline.resizer import ThumbnailResizer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["attach"])


@router.get("/attach")
def attach(
    file: str = Query(..., description="Photo path relative to the gallery root"),
    thumbnail: int = Query(0, ge=0, le=1),
    settings: Settings = Depends(get_settings),
    resizer: ThumbnailResizer = Depends(get_resizer),
    streamer: AssetStreamer = Depends(get_streamer),
) -> Response:
    # ── Step 1: path safety → 400 ───────────────────────────────
    try:
        source = resolve_within(settings.gallery_dir, file, "attach")
    except InvalidPathError as e:
        logger.warning(f"Attach: rejected path {file!r}: {e}")
        raise HTTPException(status_code=400, detail="Invalid file path")

    # ── Step 2: missing photo → placeholder ─────────────────────
    if not os.path.isfile(source):
        logger.info(f"Attach: {source} not found, serving placeholder")
        root = settings.thumbnail_dir if thumbnail else settings.gallery_dir
        placeholder = os.path.join(root, settings.NO_PHOTO_FILE)
        return streamer.send(placeholder, settings.NO_PHOTO_FILE)

    if not thumbnail:
        return streamer.send(source, os.path.basename(source))

    # ── Step 3: thumbnail mirrors the gallery layout ────────────
    relative = os.path.relpath(source, os.path.realpath(settings.gallery_dir))
    thumb_path = os.path.join(settings.thumbnail_dir, relative)
    try:
        resizer.resize(source, thumb_path)
    except ThumbnailError as e:
        logger.error(f"Attach: thumbnail generation failed for {source}: {e}")
        raise HTTPException(status_code=500, detail="Error Image Resize")

    return streamer.send(thumb_path, os.path.basename(source))
