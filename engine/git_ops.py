"""Git operations on the repository being attributed."""
from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

import httpx
import pygit2
from pydantic import BaseModel, Field
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


class PullRequest(BaseModel):
    """Model representing a GitHub pull request."""

    number: int = Field(description="PR number")
    url: str = Field(description="PR URL")
    title: str = Field(description="PR title")
    head: str = Field(description="Head branch name")
    base: str = Field(description="Base branch name")


class GitOps:
    """Helper class for Git operations using pygit2."""

    def __init__(
        self,
        repo_path: str | Path,
        github_token: Optional[str] = None,
        committer: Optional[Dict[str, str]] = None,
    ) -> None:
        """Initialize GitOps with repository path and credentials.

        Args:
            repo_path: Path to the Git repository
            github_token: Optional GitHub token for pull request creation
            committer: Optional dictionary with 'name' and 'email' for commits

        Raises:
            ValueError: If ``repo_path`` is not a Git repository
        """
        self.repo_path = Path(repo_path)
        try:
            self.repo = pygit2.Repository(str(self.repo_path))
        except pygit2.GitError as e:
            raise ValueError(f"Not a git repository: {self.repo_path}") from e
        self.github_token = github_token or os.getenv("GITHUB_TOKEN")

        committer = committer or {
            "name": "github-actions[bot]",
            "email": "github-actions[bot]@users.noreply.github.com",
        }
        self.signature = pygit2.Signature(committer["name"], committer["email"])

    def checkout_commit(self, sha: str, submodules: bool = True) -> None:
        """Check out ``sha`` with a detached HEAD.

        Args:
            sha: Commit to check out
            submodules: Also initialize and update submodules recursively

        Raises:
            ValueError: If the commit is unknown or the checkout fails
        """
        try:
            commit = self.repo.revparse_single(sha).peel(pygit2.Commit)
            self.repo.checkout_tree(commit, strategy=pygit2.enums.CheckoutStrategy.FORCE)
            self.repo.set_head(commit.id)
            logger.info(f"Checked out {commit.id}")
        except (KeyError, ValueError, pygit2.GitError) as e:
            raise ValueError(f"Failed to checkout {sha}: {e}") from e

        if not submodules:
            return

        result = subprocess.run(
            ["git", "submodule", "update", "--init", "--recursive"],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise ValueError(f"Submodule update failed: {result.stderr.strip()}")

    def changed_files(self, paths: Iterable[str]) -> List[str]:
        """Return the paths, relative to the repository root, that differ from HEAD.

        Untracked files count as changed.
        """
        status = self.repo.status()
        changed = []
        for path in paths:
            flags = status.get(path, pygit2.enums.FileStatus.CURRENT)
            if flags not in (pygit2.enums.FileStatus.CURRENT, pygit2.enums.FileStatus.IGNORED):
                changed.append(path)
        return changed

    def create_branch(self, branch_name: str, from_ref: str = "HEAD") -> pygit2.Branch:
        """Create a new branch from the specified reference.

        Args:
            branch_name: Name of the branch to create
            from_ref: Revision to create branch from (default: HEAD)

        Returns:
            The newly created branch

        Raises:
            ValueError: If branch already exists or reference is invalid
        """
        if f"refs/heads/{branch_name}" in self.repo.references:
            raise ValueError(f"Branch {branch_name} already exists")

        try:
            target = self.repo.revparse_single(from_ref).peel(pygit2.Commit)
        except (KeyError, ValueError, pygit2.GitError) as e:
            raise ValueError(f"Reference {from_ref} not found") from e

        new_branch = self.repo.branches.local.create(branch_name, target)
        logger.info(f"Created branch {branch_name} from {from_ref}")
        return new_branch

    def checkout_branch(self, branch_name: str) -> None:
        """Checkout the specified branch.

        Raises:
            ValueError: If branch doesn't exist or checkout fails
        """
        try:
            branch_ref = self.repo.references[f"refs/heads/{branch_name}"]
            self.repo.checkout(branch_ref)
            logger.info(f"Checked out branch {branch_name}")
        except (KeyError, pygit2.GitError) as e:
            raise ValueError(f"Failed to checkout branch: {e}") from e

    def commit_changes(self, message: str, files: List[str]) -> Optional[str]:
        """Commit the given files on the current branch.

        Args:
            message: Commit message
            files: Paths relative to the repository root to stage

        Returns:
            The commit hash if successful, None if no changes to commit

        Raises:
            ValueError: If commit operation fails
        """
        try:
            index = self.repo.index
            for file_path in files:
                index.add(file_path)
            index.write()

            parent = self.repo.head.peel(pygit2.Commit)
            tree_id = index.write_tree()
            if tree_id == parent.tree.id:
                logger.info("No changes to commit")
                return None

            commit_id = self.repo.create_commit(
                "HEAD",
                self.signature,
                self.signature,
                message,
                tree_id,
                [parent.id],
            )
            logger.info(f"Created commit {commit_id}")
            return str(commit_id)

        except pygit2.GitError as e:
            raise ValueError(f"Failed to create commit: {e}") from e

    def push_branch(self, branch_name: str, remote: str = "origin") -> None:
        """Push a branch to the remote with the git CLI.

        Raises:
            ValueError: If the push fails
        """
        result = subprocess.run(
            ["git", "push", remote, branch_name],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise ValueError(f"Push failed: {result.stderr}")
        logger.info(f"Pushed {branch_name} to {remote}")

    def _owner_and_repo(self) -> tuple[str, str]:
        remote_url = self.repo.remotes["origin"].url
        if remote_url.startswith("git@"):
            path = remote_url.split(":", 1)[1]
        else:
            path = urlparse(remote_url).path
        path_parts = path.strip("/").split("/")
        return path_parts[0], path_parts[1].removesuffix(".git")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(self, client: httpx.AsyncClient, url: str, payload: dict) -> httpx.Response:
        response = await client.post(
            url,
            json=payload,
            headers={
                "Authorization": f"token {self.github_token}",
                "Accept": "application/vnd.github.v3+json",
            },
        )
        response.raise_for_status()
        return response

    async def create_pull_request(
        self,
        title: str,
        body: str,
        head_branch: str,
        base_branch: str = "main",
    ) -> PullRequest:
        """Create a GitHub pull request.

        Args:
            title: PR title
            body: PR description
            head_branch: Source branch name
            base_branch: Target branch name (default: main)

        Returns:
            PullRequest object with PR details

        Raises:
            ValueError: If PR creation fails or GitHub token is missing
        """
        if not self.github_token:
            raise ValueError("GitHub token required for PR operations")

        try:
            owner, repo = self._owner_and_repo()
            async with httpx.AsyncClient() as client:
                response = await self._post(
                    client,
                    f"{GITHUB_API}/repos/{owner}/{repo}/pulls",
                    {"title": title, "body": body, "head": head_branch, "base": base_branch},
                )
                pr_info = response.json()

            logger.info(
                f"Created PR #{pr_info['number']}: {title}",
                extra={"pr_url": pr_info["html_url"]},
            )
            return PullRequest(
                number=pr_info["number"],
                url=pr_info["html_url"],
                title=pr_info["title"],
                head=pr_info["head"]["ref"],
                base=pr_info["base"]["ref"],
            )

        except (httpx.HTTPError, KeyError, IndexError) as e:
            raise ValueError(f"Failed to create pull request: {e}") from e
