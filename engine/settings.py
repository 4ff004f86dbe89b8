"""Run configuration read once at process start."""
from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings

from analysis.ort import ORT_REF, ORT_REPOSITORY


class WorkflowSettings(BaseSettings):
    """Settings for an attribution run."""

    branch_name: str = "main"
    commit_id: str = ""
    workspace: Path = Path(".")
    install_dir: Path = Path("./ort")
    ort_repository: str = ORT_REPOSITORY
    ort_ref: str = ORT_REF
    java_heap: str = "8g"
    config_dir: Path = Path("~/.ort/config")
    cache_dir: Optional[Path] = None
    remote_url: Optional[str] = None
    runner_os: str = Field(default_factory=lambda: os.getenv("RUNNER_OS") or platform.system())
    github_token: Optional[str] = None
    open_pull_request: bool = False

    class Config:
        """Pydantic config."""

        env_prefix = "ORT_"

    def target_inputs(self) -> Tuple[str, str]:
        """Return the ``(branch, commit)`` pair handed to the resolver.

        A branch left at its default does not count as supplied once a commit
        id is given. An explicitly set branch still conflicts with a commit.
        """
        branch = self.branch_name
        if self.commit_id and "branch_name" not in self.model_fields_set:
            branch = ""
        return branch, self.commit_id

    def cache_paths(self) -> Tuple[Path, ...]:
        """Locations making up the cached ORT build."""
        gradle = Path("~/.gradle").expanduser()
        return (self.install_dir, gradle / "caches", gradle / "wrapper")
