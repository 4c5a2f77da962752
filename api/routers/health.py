"""
Liveness and backend report.

GET /health answers as soon as the app is built. The `backends` list is
the fallback chain this process settled on at startup, in the order a
resize tries them, e.g. ["vips", "opencv", "pillow"]. A box where libvips
failed to load shows ["opencv", "pillow"], which is the quickest way to
find out why SVG thumbnails stopped working.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_resizer
from api.schemas.photo import HealthStatus
from pipeline.resizer import ThumbnailResizer

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(
    resizer: ThumbnailResizer = Depends(get_resizer),
) -> HealthStatus:
    """Report the registered resize backends."""
    return HealthStatus(status="healthy", backends=resizer.registry.names())
