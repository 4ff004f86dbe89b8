#!/usr/bin/env python3
"""Command-line entry point for generating third-party attribution files."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from tabulate import tabulate

from analysis.ort import AnalysisError, missing_prerequisites
from cache.store import CacheStore, CacheStoreError, LocalCacheStore, SignalCacheStore
from engine.gate import GateError
from engine.pipeline import AttributionPipeline, RunResult
from engine.resolver import TargetValidationError
from engine.settings import WorkflowSettings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_TARGET = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Create third-party attribution files with the OSS Review Toolkit"
    )
    parser.add_argument("--branch-name", help="Branch to run against (default: main)")
    parser.add_argument("--commit-id", help="Commit ID to run against")
    parser.add_argument("--workspace", type=Path, help="Repository to attribute")
    parser.add_argument("--install-dir", type=Path, help="Where ORT is cloned and built")
    parser.add_argument(
        "--remote-url", help="Resolve the branch with git ls-remote against this URL"
    )

    cache_group = parser.add_mutually_exclusive_group()
    cache_group.add_argument(
        "--cache-dir", type=Path, help="Directory for a local cache of the ORT build"
    )
    cache_group.add_argument(
        "--cache-hit",
        choices=["true", "false"],
        help="Cache hit reported by a host CI cache that restored the ORT build",
    )

    parser.add_argument(
        "--open-pr", action="store_true", help="Open a pull request when attributions change"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    return parser


def settings_from_args(args: argparse.Namespace) -> WorkflowSettings:
    """Build settings from the environment, letting given flags override them."""
    overrides: Dict[str, Any] = {}
    if args.branch_name is not None:
        overrides["branch_name"] = args.branch_name
    if args.commit_id is not None:
        overrides["commit_id"] = args.commit_id
    if args.workspace is not None:
        overrides["workspace"] = args.workspace
    if args.install_dir is not None:
        overrides["install_dir"] = args.install_dir
    if args.remote_url is not None:
        overrides["remote_url"] = args.remote_url
    if args.cache_dir is not None:
        overrides["cache_dir"] = args.cache_dir
    if args.open_pr:
        overrides["open_pull_request"] = True
    return WorkflowSettings(**overrides)


def cache_store_for(settings: WorkflowSettings, cache_hit: Optional[str]) -> CacheStore:
    if cache_hit is not None:
        return SignalCacheStore(cache_hit == "true", settings.cache_paths())
    if settings.cache_dir is not None:
        return LocalCacheStore(settings.cache_dir)
    return SignalCacheStore(False)


def summarize(result: RunResult) -> str:
    rows: List[List[str]] = []
    for report in result.reports:
        rows.append([
            report.target.ecosystem.value,
            report.target.output,
            "changed" if report.target.output in result.changed else "unchanged",
        ])

    lines = [
        f"Commit: {result.commit.sha}",
        f"ORT cache: {'hit' if result.cache_hit else 'miss'}"
        + (" (built)" if result.built else ""),
        "",
        tabulate(rows, headers=["Ecosystem", "Attribution file", "Status"], tablefmt="grid"),
    ]
    if result.pull_request is not None:
        lines.append(f"\nPull request: {result.pull_request.url}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Run an attribution pass from the command line.

    Returns:
        Exit code (0 for success, 2 for invalid target inputs, 1 for other failures)
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = settings_from_args(args)
    missing = missing_prerequisites()
    if missing:
        logger.warning(f"Executables not found on PATH: {', '.join(missing)}")

    pipeline = AttributionPipeline(settings, cache_store_for(settings, args.cache_hit))
    try:
        result = pipeline.run()
    except TargetValidationError as e:
        logger.error(f"Error: {e}")
        return EXIT_INVALID_TARGET
    except (GateError, AnalysisError, CacheStoreError, ValueError, OSError) as e:
        logger.error(f"Attribution run failed: {e}")
        return EXIT_FAILURE

    print(summarize(result))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
