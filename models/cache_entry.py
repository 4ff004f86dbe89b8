"""Cache entry model for the built analysis tool."""
from __future__ import annotations

from pathlib import Path
from typing import Tuple

from pydantic.dataclasses import dataclass


@dataclass(frozen=True)
class CacheEntry:
    """A previously built artifact keyed by runner platform.

    Attributes:
        key: Cache key derived from the runtime environment
        paths: Filesystem locations the artifact occupies, in order
        hit: Whether a stored entry matching ``key`` was found
    """

    key: str
    paths: Tuple[Path, ...]
    hit: bool = False
