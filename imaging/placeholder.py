"""
The "no photo" placeholder.

When a photo is missing, unreadable or its category is gone, pages still
need something to render. The caller swaps the real record for this
descriptor, and /attach streams the placeholder image instead of leaking
an error.
"""

import os

from PIL import Image, ImageDraw

from config.settings import Settings


def no_photo(settings: Settings) -> dict:
    """Descriptor with the same keys a real photo record has."""
    site_url = settings.SITE_URL.rstrip("/") + "/"
    return {
        "url": f"{site_url}?action=photo&id=0",
        "thumbnail_url": f"{site_url}attach?file=0&thumbnail=1",
        "name": "No photo",
        "description": "No photo available",
        "category_name": "No category",
        "category_description": "No category available",
        "rate": "Rate: 0/0",
        "url_user": "",
        "real_name": "No user",
        "full_path": os.path.join(settings.gallery_dir, settings.NO_PHOTO_FILE),
        "thumbnail_path": os.path.join(settings.thumbnail_dir, settings.NO_PHOTO_FILE),
        "file": settings.NO_PHOTO_FILE,
    }


def write_placeholder_image(path: str, size: tuple[int, int] = (150, 150)) -> None:
    """Draw a plain grey 'no photo' PNG at `path`."""
    img = Image.new("RGB", size, color=(200, 200, 200))
    draw = ImageDraw.Draw(img)

    # A crossed frame so it reads as "empty" at any size
    w, h = size
    draw.rectangle([0, 0, w - 1, h - 1], outline=(150, 150, 150), width=2)
    draw.line([(0, 0), (w - 1, h - 1)], fill=(150, 150, 150), width=2)
    draw.line([(0, h - 1), (w - 1, 0)], fill=(150, 150, 150), width=2)

    img.save(path, "PNG")
