"""
L4 Execution — In-memory release manifest cache.

One value, one timestamp, one TTL. The clock is injectable so tests
can step time instead of sleeping.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from binvault.core.models.manifest import ReleaseManifest

logger = logging.getLogger(__name__)


class ManifestCache:
    """Holds the last fetched manifest until it is ``ttl`` seconds old."""

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._value: ReleaseManifest | None = None
        self._stored_at = 0.0

    def get(self) -> ReleaseManifest | None:
        """Return the cached manifest, or None when empty or expired."""
        if self._value is None:
            return None
        if self.age() >= self.ttl:
            logger.debug("Manifest cache expired (age %.1fs)", self.age())
            return None
        return self._value

    def put(self, manifest: ReleaseManifest) -> None:
        self._value = manifest
        self._stored_at = self._clock()

    def clear(self) -> None:
        self._value = None
        self._stored_at = 0.0

    def age(self) -> float:
        return self._clock() - self._stored_at
