#!/usr/bin/env python
"""Example of resolving a target reference and checking the ORT cache."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

from cache.store import LocalCacheStore, cache_key
from engine.gate import ensure_built
from engine.resolver import LocalBranchResolver, TargetValidationError, resolve
from models.cache_entry import CacheEntry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def main() -> None:
    """Resolve ``main`` in the current repository and consult a local cache."""
    repo_path = Path(".")

    try:
        resolved = resolve("main", "", LocalBranchResolver(repo_path))
    except TargetValidationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"main is at {resolved.sha}")

    store = LocalCacheStore("./.ort-cache")
    key = cache_key("Linux")
    entry = store.lookup(key) or CacheEntry(key=key, paths=(Path("./ort"),))

    built = ensure_built(entry, lambda: print("Would build ORT here"))
    print(f"Cache {'miss, built' if built else 'hit, reused'} for {key}")


if __name__ == "__main__":
    main()
