"""
FastAPI application factory.

This file:
1. Builds the FastAPI app
2. Builds the long-lived services (resizer + backend registry, streamer,
   directory provisioner) and parks them on app.state
3. Runs startup logic (logging, gallery/thumbnail roots)
4. Registers all routers (health, attach, photos)

The services are built in create_app() rather than in the lifespan so an
app driven without lifespan events (httpx's ASGITransport in the tests)
still has them.

To run:  uvicorn api.main:app --host 0.0.0.0 --port 8000 --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from api.routers import attach, health, photos
from api.streamer import AssetStreamer
from config.logging_setup import configure_logging
from config.settings import Settings, settings as default_settings
from pipeline.resizer import ThumbnailResizer
from storage.directories import DirectoryProvisioner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup work before the yield, shutdown work after it.

    Startup:
    - Configures logging
    - Creates the gallery and thumbnail roots with their stub and the
      no-photo placeholder (existing files are left alone)
    """
    # ── Startup ─────────────────────────────────────────────────
    configure_logging(app.state.settings.LOG_LEVEL)
    app.state.provisioner.ensure_roots()
    logger.info(f"API ready — backends: {', '.join(app.state.resizer.registry.names())}")

    yield  # app is running and serving requests between startup and shutdown

    # ── Shutdown ────────────────────────────────────────────────
    logger.info("API shut down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app around `settings` (the module singleton when omitted)."""
    settings = settings or default_settings

    app = FastAPI(
        title="Photo Thumbnailer",
        description="Thumbnail generation with a vips → OpenCV → Pillow fallback chain and hardened image delivery",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.resizer = ThumbnailResizer(settings)
    app.state.streamer = AssetStreamer(settings)
    app.state.provisioner = DirectoryProvisioner(settings)

    # Register routers; each one adds its endpoints to the app
    app.include_router(health.router)
    app.include_router(attach.router)
    app.include_router(photos.router)

    return app


# Module-level app for `uvicorn api.main:app`
app = create_app()
