"""
Pydantic schemas for the /photos and /health endpoints.

ThumbnailSize:  display size of a photo's thumbnail
NoPhoto:        placeholder record used when a photo is missing
HealthStatus:   which resize backends this process registered
"""

from pydantic import BaseModel


class ThumbnailSize(BaseModel):
    """Response body for GET /photos/size."""

    width: int
    height: int


class NoPhoto(BaseModel):
    """Response body for GET /photos/no-photo — same keys as a real photo record."""

    url: str
    thumbnail_url: str
    name: str
    description: str
    category_name: str
    category_description: str
    rate: str
    url_user: str
    real_name: str
    full_path: str
    thumbnail_path: str
    file: str


class HealthStatus(BaseModel):
    """Response body for GET /health."""

    status: str
    backends: list[str]   # registered backends in fallback order
