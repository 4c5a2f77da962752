"""
FastAPI dependency injection.

How this works:
- create_app() builds the settings, resizer and streamer once and stores
  them on app.state (the provisioner lives there too, for the lifespan)
- An endpoint declares `resizer: ThumbnailResizer = Depends(get_resizer)`
- FastAPI calls get_resizer() before your endpoint runs and hands it over

Tests build the app with their own Settings (pointing at a temp gallery),
or swap any of these out with app.dependency_overrides.
"""

from fastapi import Request

from api.streamer import AssetStreamer
from config.settings import Settings
from pipeline.resizer import ThumbnailResizer


def get_settings(request: Request) -> Settings:
    """Returns the Settings the app was built with."""
    return request.app.state.settings


def get_resizer(request: Request) -> ThumbnailResizer:
    """Returns the resizer (and its backend registry) built at startup."""
    return request.app.state.resizer


def get_streamer(request: Request) -> AssetStreamer:
    return request.app.state.streamer
