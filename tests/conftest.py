"""Shared fixtures for attribution tests."""
from __future__ import annotations

from pathlib import Path
from typing import Generator

import pygit2
import pytest


@pytest.fixture
def temp_git_repo(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary Git repository with one commit on ``main``.

    Args:
        tmp_path: Pytest temporary directory fixture

    Yields:
        Path to the temporary repository
    """
    repo_path = tmp_path / "test_repo"
    repo_path.mkdir()

    repo = pygit2.init_repository(str(repo_path), initial_head="main")

    python_dir = repo_path / "python"
    python_dir.mkdir()
    (python_dir / "THIRD_PARTY_LICENSES_PYTHON").write_text("old attributions\n")
    (python_dir / "requirements.txt").write_text("requests\n")

    index = repo.index
    index.add("python/THIRD_PARTY_LICENSES_PYTHON")
    index.add("python/requirements.txt")
    index.write()
    tree_id = index.write_tree()
    author = pygit2.Signature("Test User", "test@example.com")
    repo.create_commit("HEAD", author, author, "Initial commit", tree_id, [])

    repo.remotes.create("origin", "https://github.com/test-org/test-repo.git")

    yield repo_path


@pytest.fixture
def add_commit():
    """Return a helper that commits a file and returns the new commit id."""

    def _add_commit(repo_path: Path, file_name: str, content: str, message: str) -> str:
        repo = pygit2.Repository(str(repo_path))
        (repo_path / file_name).write_text(content)
        index = repo.index
        index.add(file_name)
        index.write()
        tree_id = index.write_tree()
        author = pygit2.Signature("Test User", "test@example.com")
        commit_id = repo.create_commit(
            "HEAD", author, author, message, tree_id, [repo.head.target]
        )
        return str(commit_id)

    return _add_commit
