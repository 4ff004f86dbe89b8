"""Gate that skips the expensive tool build when the cache already holds it."""
from __future__ import annotations

import logging
from typing import Callable

from models.cache_entry import CacheEntry

logger = logging.getLogger(__name__)


class GateError(Exception):
    """Base class for fetch-and-build gate failures."""


class BuildFailedError(GateError):
    """Raised when the build step fails on a cache miss."""

    def __init__(self, key: str, error_msg: str):
        self.key = key
        self.error_msg = error_msg
        super().__init__(f"Build for cache key {key} failed: {error_msg}")


def ensure_built(cache: CacheEntry, build: Callable[[], None]) -> bool:
    """Run ``build`` unless ``cache`` reports a hit.

    The gate only branches on the hit signal. Persisting the built artifact
    under ``cache.key`` is left to the caller.

    Args:
        cache: Result of the cache lookup
        build: Blocking acquisition-and-build step, run at most once

    Returns:
        True if ``build`` ran, False if the cached artifact was reused

    Raises:
        BuildFailedError: If ``build`` raises
    """
    if cache.hit:
        logger.info(f"Cache hit for {cache.key}, skipping build")
        return False

    logger.info(f"Cache miss for {cache.key}, building")
    try:
        build()
    except Exception as e:
        logger.error(f"Build failed: {e}", extra={"cache_key": cache.key})
        raise BuildFailedError(cache.key, str(e)) from e

    logger.info(f"Build for {cache.key} completed")
    return True
