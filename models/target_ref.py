"""Target reference models for selecting the commit to attribute."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import model_validator
from pydantic.dataclasses import dataclass


@dataclass(frozen=True)
class TargetReference:
    """The checkout point requested by the user.

    Exactly one of ``branch`` and ``commit`` is populated.

    Attributes:
        branch: Branch name, a mutable pointer into history
        commit: Commit identifier, immutable
    """

    branch: Optional[str] = None
    commit: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "TargetReference":
        if self.branch and self.commit:
            raise ValueError("Only one of branch and commit may be set")
        if not self.branch and not self.commit:
            raise ValueError("One of branch or commit must be set")
        return self

    @property
    def kind(self) -> Literal["branch", "commit"]:
        return "commit" if self.commit else "branch"

    @property
    def value(self) -> str:
        return self.commit or self.branch  # type: ignore[return-value]


@dataclass(frozen=True)
class ResolvedCommit:
    """A single commit identifier produced from a TargetReference.

    Attributes:
        sha: The commit identifier handed to the checkout step
        reference: The reference it was resolved from
    """

    sha: str
    reference: TargetReference

    def __str__(self) -> str:
        return self.sha
