"""Attribution run: resolve, check out, build ORT if needed, analyze."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

import anyio
from pydantic import BaseModel

from analysis.ort import AnalysisTool, OrtInstaller, OrtTool, write_ort_config
from cache.store import CacheStore, cache_key
from engine.gate import ensure_built
from engine.git_ops import GitOps, PullRequest
from engine.resolver import BranchResolver, LocalBranchResolver, RemoteBranchResolver, resolve
from engine.settings import WorkflowSettings
from models.attribution import DEFAULT_TARGETS, AttributionReport, AttributionTarget
from models.cache_entry import CacheEntry
from models.target_ref import ResolvedCommit

logger = logging.getLogger(__name__)

COMMIT_MESSAGE = "Updated attribution files"
PR_BODY = "Updated attribution files generated by the OSS Review Toolkit for commit {sha}."


class RunResult(BaseModel):
    """Outcome of a completed attribution run."""

    commit: ResolvedCommit
    cache_hit: bool
    built: bool
    reports: List[AttributionReport]
    changed: List[str]
    pull_request: Optional[PullRequest] = None


def export_github_env(name: str, value: str, env_file: Optional[str] = None) -> bool:
    """Append ``name=value`` to the GitHub Actions environment file.

    Returns:
        False when no environment file is configured

    Raises:
        ValueError: If the value contains a line break
    """
    if "\n" in value or "\r" in value:
        raise ValueError(f"Refusing to export {name}: value contains a line break")
    env_file = env_file or os.getenv("GITHUB_ENV")
    if not env_file:
        return False
    with open(env_file, "a", encoding="utf-8") as f:
        f.write(f"{name}={value}\n")
    logger.debug(f"Exported {name} to {env_file}")
    return True


class AttributionPipeline:
    """Runs every step of an attribution run in order.

    Any step failure aborts the run. No partial result is returned.
    """

    def __init__(
        self,
        settings: WorkflowSettings,
        cache_store: CacheStore,
        branch_resolver: Optional[BranchResolver] = None,
        tool: Optional[AnalysisTool] = None,
        installer: Optional[OrtInstaller] = None,
        git_ops: Optional[GitOps] = None,
        targets: Sequence[AttributionTarget] = DEFAULT_TARGETS,
    ) -> None:
        self.settings = settings
        self.workspace = Path(settings.workspace)
        self.cache_store = cache_store
        if branch_resolver is None:
            if settings.remote_url:
                branch_resolver = RemoteBranchResolver(settings.remote_url)
            else:
                branch_resolver = LocalBranchResolver(self.workspace)
        self.branch_resolver = branch_resolver
        self.installer = installer or OrtInstaller(
            settings.install_dir,
            repository=settings.ort_repository,
            ref=settings.ort_ref,
            java_heap=settings.java_heap,
        )
        self.tool = tool or OrtTool(self.installer.executable)
        self._git_ops = git_ops
        self.targets = tuple(targets)

    @property
    def git_ops(self) -> GitOps:
        if self._git_ops is None:
            self._git_ops = GitOps(self.workspace, github_token=self.settings.github_token)
        return self._git_ops

    def lookup_cache(self) -> CacheEntry:
        """Query the cache store, turning a missing entry into a miss."""
        key = cache_key(self.settings.runner_os)
        entry = self.cache_store.lookup(key)
        if entry is None:
            return CacheEntry(key=key, paths=self.settings.cache_paths(), hit=False)
        return entry

    def run(self) -> RunResult:
        """Execute the attribution run.

        Raises:
            TargetValidationError: If the target inputs are invalid
            BuildFailedError: If ORT has to be built and the build fails
            AnalysisError: If ORT fails on any target
            ValueError: If a git operation fails or the commit id cannot be exported
            OSError: If a config or environment file cannot be written
        """
        branch, commit = self.settings.target_inputs()
        resolved = resolve(branch, commit, self.branch_resolver)
        export_github_env("TARGET_COMMIT", resolved.sha)

        self.git_ops.checkout_commit(resolved.sha)

        entry = self.lookup_cache()
        built = ensure_built(entry, self.installer.install)
        if built:
            self.cache_store.store(entry.key, entry.paths)

        write_ort_config(self.settings.config_dir)

        reports = [self.tool.run(target, self.workspace) for target in self.targets]

        changed = self.git_ops.changed_files([target.output for target in self.targets])
        if changed:
            logger.info(f"Attribution files changed: {', '.join(changed)}")
        else:
            logger.info("Attribution files are up to date")

        pull_request = None
        if changed and self.settings.open_pull_request:
            pull_request = self.open_pull_request(resolved, changed)

        return RunResult(
            commit=resolved,
            cache_hit=entry.hit,
            built=built,
            reports=reports,
            changed=changed,
            pull_request=pull_request,
        )

    def open_pull_request(self, resolved: ResolvedCommit, changed: List[str]) -> PullRequest:
        """Commit the changed attribution files on a new branch and open a PR."""
        head_branch = f"ort-diff-for-{resolved.sha}"
        base_branch = resolved.reference.branch or "main"

        self.git_ops.create_branch(head_branch)
        self.git_ops.checkout_branch(head_branch)
        self.git_ops.commit_changes(COMMIT_MESSAGE, changed)
        self.git_ops.push_branch(head_branch)

        return anyio.run(
            self.git_ops.create_pull_request,
            COMMIT_MESSAGE,
            PR_BODY.format(sha=resolved.sha),
            head_branch,
            base_branch,
        )
