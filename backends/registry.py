"""
Backend registry — which resize backends exist and in what order.

Availability is decided once, when the registry is built at startup:
a backend is registered only if its library imported AND its config flag
is on. The resizer then iterates just those, always in priority order:

    vips → opencv → pillow

Ordering is by output quality, not speed. Pillow is the last resort and
is registered no matter what the config says.
"""

import logging

from backends.base import AbstractResizeBackend
from backends.opencv_backend import OpenCVBackend
from backends.pillow_backend import PillowBackend
from backends.vips_backend import VipsBackend
from config.settings import Settings

logger = logging.getLogger(__name__)

# Priority order. The last entry must be the always-available fallback.
BACKEND_CLASSES: list[type[AbstractResizeBackend]] = [VipsBackend, OpenCVBackend, PillowBackend]


class BackendRegistry:

    def __init__(self, backends: list[AbstractResizeBackend]):
        if not backends or not isinstance(backends[-1], PillowBackend):
            raise ValueError("The Pillow backend must be registered as the last resort")
        self._backends = list(backends)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackendRegistry":
        """Probe every backend class once and keep the usable ones."""
        backends = []
        for backend_cls in BACKEND_CLASSES:
            if backend_cls is not PillowBackend:
                if not backend_cls.is_available():
                    logger.info(f"Backend {backend_cls.__name__} unavailable: library not installed")
                    continue
                if not backend_cls.enabled(settings):
                    logger.info(f"Backend {backend_cls.__name__} disabled by configuration")
                    continue
            backends.append(backend_cls(settings))

        registry = cls(backends)
        logger.info(f"Resize backends registered: {registry.names()}")
        return registry

    def __iter__(self):
        return iter(self._backends)

    def __len__(self) -> int:
        return len(self._backends)

    def names(self) -> list[str]:
        return [b.name for b in self._backends]

    def supported_mimes(self) -> set[str]:
        """Every MIME at least one registered backend can resize."""
        return {mime for b in self._backends for mime in b.FORMATS if b.supports(mime)}
