"""Cache stores for the built analysis tool."""
from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence

from models.cache_entry import CacheEntry

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


class CacheStoreError(Exception):
    """Exception raised when a cache entry cannot be saved or restored."""

    def __init__(self, key: str, error_msg: str):
        self.key = key
        self.error_msg = error_msg
        super().__init__(f"Cache entry {key}: {error_msg}")


def cache_key(runner_os: str, tool: str = "ort") -> str:
    """Build the cache key for a tool installation on a runner platform."""
    return f"{runner_os}-{tool}"


class CacheStore(Protocol):
    """Key-value store for built artifacts."""

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under ``key``, or None."""
        ...

    def store(self, key: str, paths: Sequence[Path]) -> None:
        """Persist ``paths`` under ``key``."""
        ...


class SignalCacheStore:
    """Store backed by a host CI cache that has already restored the paths.

    The host reports only whether its lookup hit, and persists the paths
    itself at the end of the job.
    """

    def __init__(self, hit: bool, paths: Sequence[Path] = ()) -> None:
        self.hit = hit
        self.paths = tuple(Path(p) for p in paths)

    def lookup(self, key: str) -> Optional[CacheEntry]:
        if not self.hit:
            return None
        return CacheEntry(key=key, paths=self.paths, hit=True)

    def store(self, key: str, paths: Sequence[Path]) -> None:
        logger.debug(f"Leaving persistence of {key} to the host cache")


class LocalCacheStore:
    """Directory-backed cache store.

    Each key gets a directory under ``root`` holding one copy per saved path
    and a manifest mapping those copies back to their original locations.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def _entry_dir(self, key: str) -> Path:
        return self.root / key

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Restore the entry for ``key`` onto disk if one is stored.

        Raises:
            CacheStoreError: If the manifest is unreadable or a copy is missing
        """
        manifest = self._entry_dir(key) / MANIFEST_NAME
        if not manifest.exists():
            logger.info(f"No cache entry for {key}")
            return None

        try:
            saved = json.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CacheStoreError(key, f"unreadable manifest: {e}") from e

        try:
            slots = [(item["slot"], Path(item["path"])) for item in saved["paths"]]
        except (KeyError, TypeError) as e:
            raise CacheStoreError(key, f"malformed manifest: {e!r}") from e

        paths = []
        for slot, dest in slots:
            src = self._entry_dir(key) / slot
            if not src.exists():
                raise CacheStoreError(key, f"missing cached copy of {dest}")
            _replace(src, dest)
            paths.append(dest)

        logger.info(f"Restored {len(paths)} paths for {key}")
        return CacheEntry(key=key, paths=tuple(paths), hit=True)

    def store(self, key: str, paths: Sequence[Path]) -> None:
        """Copy every existing path into the entry for ``key``.

        Paths that do not exist are skipped. An existing entry is replaced.
        """
        entry_dir = self._entry_dir(key)
        if entry_dir.exists():
            shutil.rmtree(entry_dir)
        entry_dir.mkdir(parents=True)

        saved = []
        for slot, path in enumerate(_expand(paths)):
            if not path.exists():
                logger.warning(f"Not caching missing path {path}")
                continue
            _replace(path, entry_dir / str(slot))
            saved.append({"slot": str(slot), "path": str(path)})

        (entry_dir / MANIFEST_NAME).write_text(
            json.dumps({"key": key, "paths": saved}, indent=2), encoding="utf-8"
        )
        logger.info(f"Stored {len(saved)} paths under {key}")


def _expand(paths: Iterable[Path]) -> list[Path]:
    return [Path(p).expanduser().absolute() for p in paths]


def _replace(src: Path, dest: Path) -> None:
    """Copy ``src`` to ``dest``, removing whatever is at ``dest`` first."""
    if dest.is_dir():
        shutil.rmtree(dest)
    elif dest.exists():
        dest.unlink()
    dest.parent.mkdir(parents=True, exist_ok=True)
    if src.is_dir():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest)
