"""
Photo information endpoints.

GET /photos/size?file=<category/file>   thumbnail display size of a photo
GET /photos/no-photo                     placeholder record for missing photos
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_resizer, get_settings
from api.schemas.photo import NoPhoto, ThumbnailSize
from config.settings import Settings
from imaging.errors import InvalidPathError, SourceTooLargeError, SourceUnavailableError, ThumbnailError
from imaging.paths import resolve_within
from imaging.placeholder import no_photo
from pipeline.resizer import ThumbnailResizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/photos", tags=["photos"])


@router.get("/size", response_model=ThumbnailSize)
def photo_size(
    file: str = Query(..., description="Photo path relative to the gallery root"),
    settings: Settings = Depends(get_settings),
    resizer: ThumbnailResizer = Depends(get_resizer),
) -> ThumbnailSize:
    """
    How big the thumbnail of `file` is displayed, computed from the
    original's real dimensions. Nothing is written.
    """
    try:
        path = resolve_within(settings.gallery_dir, file, "photo_size")
    except InvalidPathError:
        raise HTTPException(status_code=400, detail="Invalid file path")

    try:
        width, height = resizer.size_image(path)
    except SourceUnavailableError:
        raise HTTPException(status_code=404, detail=f"Photo {file} not found")
    except SourceTooLargeError as e:
        logger.warning(f"Photo size: {e}")
        raise HTTPException(status_code=413, detail="Image dimensions too large")
    except ThumbnailError as e:
        logger.error(f"Photo size failed for {path}: {e}")
        raise HTTPException(status_code=500, detail="Error Image Size")

    return ThumbnailSize(width=width, height=height)


@router.get("/no-photo", response_model=NoPhoto)
async def get_no_photo(settings: Settings = Depends(get_settings)) -> NoPhoto:
    return NoPhoto(**no_photo(settings))
