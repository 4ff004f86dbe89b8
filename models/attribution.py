"""Attribution targets and reports for each dependency ecosystem."""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Tuple

from pydantic.dataclasses import dataclass


class Ecosystem(str, Enum):
    """Dependency ecosystems covered by the attribution run."""

    PYTHON = "python"
    NODE = "node"
    RUST = "rust"
    JAVA = "java"


@dataclass(frozen=True)
class AttributionTarget:
    """A project folder and the attribution file generated for it.

    Attributes:
        ecosystem: Dependency ecosystem of the folder
        folder: Folder holding the manifests, relative to the workspace
        output: Attribution file path, relative to the workspace
    """

    ecosystem: Ecosystem
    folder: str
    output: str


DEFAULT_TARGETS: Tuple[AttributionTarget, ...] = (
    AttributionTarget(Ecosystem.PYTHON, "python", "python/THIRD_PARTY_LICENSES_PYTHON"),
    AttributionTarget(Ecosystem.NODE, "node", "node/THIRD_PARTY_LICENSES_NODE"),
    AttributionTarget(Ecosystem.RUST, "glide-core", "glide-core/THIRD_PARTY_LICENSES_RUST"),
    AttributionTarget(Ecosystem.JAVA, "java", "java/THIRD_PARTY_LICENSES_JAVA"),
)


@dataclass(frozen=True)
class AttributionReport:
    """Files produced by one analysis of a target.

    Attributes:
        target: The target that was analyzed
        results_dir: Directory holding the raw analyzer and reporter output
        notice_path: Notice file written by the reporter
        output_path: Attribution file the notice was copied to
    """

    target: AttributionTarget
    results_dir: Path
    notice_path: Path
    output_path: Path
