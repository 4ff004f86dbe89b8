"""Resolution of a branch name or commit id to a single commit."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional, Protocol

import pygit2

from models.target_ref import ResolvedCommit, TargetReference

logger = logging.getLogger(__name__)


class TargetValidationError(Exception):
    """Base class for invalid or unresolvable target references."""


class ConflictingTargetError(TargetValidationError):
    """Raised when both a branch name and a commit id are supplied."""

    def __init__(self, branch: str, commit: str):
        self.branch = branch
        self.commit = commit
        super().__init__(
            f"Both branch-name ({branch}) and commit-id ({commit}) are provided. "
            "Only one should be specified."
        )


class MissingTargetError(TargetValidationError):
    """Raised when neither a branch name nor a commit id is supplied."""

    def __init__(self) -> None:
        super().__init__(
            "Neither branch-name nor commit-id are provided. One must be specified."
        )


class ResolutionFailedError(TargetValidationError):
    """Raised when a branch name cannot be dereferenced to a commit."""

    def __init__(self, branch: str, error_msg: str):
        self.branch = branch
        self.error_msg = error_msg
        super().__init__(f"Failed to resolve branch {branch}: {error_msg}")


class BranchResolver(Protocol):
    """Looks up the commit a branch currently points at."""

    def tip(self, branch: str) -> str:
        """Return the commit id at the tip of ``branch``."""
        ...


class LocalBranchResolver:
    """Resolve branches against a local clone using pygit2."""

    def __init__(self, repo_path: str | Path, remote: str = "origin") -> None:
        self.repo_path = Path(repo_path)
        self.remote = remote

    def tip(self, branch: str) -> str:
        """Return the tip of ``branch``.

        The remote-tracking ref is preferred over the local branch so that a
        stale local branch does not shadow the remote state.

        Raises:
            LookupError: If neither ref exists
            pygit2.GitError: If the repository cannot be opened
        """
        repo = pygit2.Repository(str(self.repo_path))
        for ref_name in (f"refs/remotes/{self.remote}/{branch}", f"refs/heads/{branch}"):
            if ref_name in repo.references:
                commit = repo.references[ref_name].peel(pygit2.Commit)
                logger.debug(f"Resolved {ref_name} to {commit.id}")
                return str(commit.id)
        raise LookupError(f"No ref for branch {branch} in {self.repo_path}")


class RemoteBranchResolver:
    """Resolve branches by querying a remote with ``git ls-remote``."""

    def __init__(self, url: str) -> None:
        self.url = url

    def tip(self, branch: str) -> str:
        """Return the tip of ``branch`` on the remote.

        Raises:
            LookupError: If the remote has no such branch
            RuntimeError: If ``git ls-remote`` fails
        """
        result = subprocess.run(
            ["git", "ls-remote", self.url, f"refs/heads/{branch}"],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise RuntimeError(f"git ls-remote failed: {result.stderr.strip()}")

        for line in result.stdout.splitlines():
            sha, _, ref = line.partition("\t")
            if ref == f"refs/heads/{branch}":
                return sha
        raise LookupError(f"Branch {branch} not found on {self.url}")


def resolve(
    branch: Optional[str],
    commit: Optional[str],
    branch_resolver: Optional[BranchResolver] = None,
) -> ResolvedCommit:
    """Validate the target inputs and resolve them to one commit.

    Args:
        branch: Branch name, empty or None when not supplied
        commit: Commit id, empty or None when not supplied
        branch_resolver: Collaborator used to dereference a branch name

    Returns:
        The resolved commit. A commit id is passed through unchanged.

    Raises:
        ConflictingTargetError: If both inputs are non-empty
        MissingTargetError: If both inputs are empty
        ResolutionFailedError: If the branch cannot be dereferenced
    """
    if branch and commit:
        raise ConflictingTargetError(branch, commit)
    if not branch and not commit:
        raise MissingTargetError()

    if commit:
        logger.info(f"Using commit {commit}")
        return ResolvedCommit(sha=commit, reference=TargetReference(commit=commit))

    if branch_resolver is None:
        raise ResolutionFailedError(branch, "no branch resolver configured")

    try:
        sha = branch_resolver.tip(branch)
    except Exception as e:
        logger.error(f"Branch resolution failed: {e}", extra={"branch": branch})
        raise ResolutionFailedError(branch, str(e)) from e

    if not sha:
        raise ResolutionFailedError(branch, "resolver returned an empty commit id")

    logger.info(f"Resolved branch {branch} to {sha}")
    return ResolvedCommit(sha=sha, reference=TargetReference(branch=branch))
