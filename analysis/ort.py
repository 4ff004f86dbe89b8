"""OSS Review Toolkit installation and invocation."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

import jinja2

from models.attribution import AttributionReport, AttributionTarget

logger = logging.getLogger(__name__)

ORT_REPOSITORY = "https://github.com/oss-review-toolkit/ort"
ORT_REF = "26.0.0"
RESULTS_DIR = "ort_results"
NOTICE_FILE = "NOTICE_DEFAULT"
DEFAULT_PACKAGE_MANAGERS = ("Cargo", "NPM", "PIP", "GradleInspector")
PREREQUISITES = ("git", "java", "cargo", "npm", "python-inspector")


class InstallError(Exception):
    """Exception raised when ORT cannot be fetched or built."""

    def __init__(self, step: str, error_msg: str):
        """Initialize with the failing step and its error output.

        Args:
            step: Name of the installation step that failed
            error_msg: Error output of the step
        """
        self.step = step
        self.error_msg = error_msg
        super().__init__(f"ORT {step} failed: {error_msg}")


class AnalysisError(Exception):
    """Exception raised when ORT fails to produce an attribution file."""

    def __init__(self, target: AttributionTarget, error_msg: str):
        """Initialize with the target and error message.

        Args:
            target: The attribution target being analyzed
            error_msg: Error output of the failing command
        """
        self.target = target
        self.error_msg = error_msg
        super().__init__(f"ORT failed for {target.folder}: {error_msg}")


class AnalysisTool(Protocol):
    """Tool that turns a project folder into an attribution file."""

    def run(self, target: AttributionTarget, workspace: Path) -> AttributionReport:
        """Analyze ``target`` inside ``workspace`` and write its attribution file."""
        ...


class OrtInstaller:
    """Fetches ORT from source and builds its command line distribution."""

    def __init__(
        self,
        install_dir: str | Path,
        repository: str = ORT_REPOSITORY,
        ref: str = ORT_REF,
        java_heap: str = "8g",
    ) -> None:
        self.install_dir = Path(install_dir)
        self.repository = repository
        self.ref = ref
        self.java_heap = java_heap

    @property
    def executable(self) -> Path:
        return self.install_dir / "cli" / "build" / "install" / "ort" / "bin" / "ort"

    def install(self) -> None:
        """Clone ORT at the pinned ref and run ``gradlew installDist``.

        Blocks until the build finishes. There is no timeout.

        Raises:
            InstallError: If the clone or the build fails
        """
        if self.install_dir.exists():
            logger.info(f"Removing existing directory {self.install_dir}")
            shutil.rmtree(self.install_dir)

        logger.info(f"Cloning {self.repository}@{self.ref} to {self.install_dir}")
        clone = subprocess.run(
            [
                "git",
                "clone",
                "--branch",
                self.ref,
                "--recurse-submodules",
                self.repository,
                str(self.install_dir),
            ],
            capture_output=True,
            text=True,
        )
        if clone.returncode != 0:
            raise InstallError("clone", clone.stderr.strip())

        env = dict(os.environ)
        env["JAVA_OPTS"] = f"{env.get('JAVA_OPTS', '')} -Xmx{self.java_heap}".strip()

        logger.info("Building ORT with gradle, this takes several minutes")
        build = subprocess.run(
            ["./gradlew", "installDist"],
            cwd=self.install_dir,
            env=env,
            capture_output=True,
            text=True,
        )
        if build.returncode != 0:
            raise InstallError("build", build.stderr.strip() or build.stdout.strip())

        logger.info(f"ORT installed at {self.executable}")


class OrtTool:
    """Runs the ORT analyzer and reporter for one project folder at a time."""

    def __init__(self, executable: str | Path) -> None:
        self.executable = str(executable)

    def _run(self, target: AttributionTarget, args: List[str]) -> None:
        cmd = [self.executable, *args]
        logger.debug(f"Command: {' '.join(cmd)}")
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            logger.error(
                "ORT command failed",
                extra={"folder": target.folder, "error": result.stderr},
            )
            raise AnalysisError(target, result.stderr.strip() or result.stdout.strip())

    def run(self, target: AttributionTarget, workspace: Path) -> AttributionReport:
        """Analyze ``target`` and copy the generated notice to its output path.

        Args:
            target: Folder and output file to produce
            workspace: Root of the checked out repository

        Returns:
            AttributionReport describing the produced files

        Raises:
            AnalysisError: If either ORT command fails or no notice is produced
        """
        folder = workspace / target.folder
        results_dir = folder / RESULTS_DIR
        logger.info(f"Running ORT analyzer on {folder}")
        self._run(target, ["analyze", "-i", str(folder), "-o", str(results_dir), "-f", "JSON"])

        logger.info(f"Running ORT reporter for {folder}")
        self._run(
            target,
            [
                "report",
                "-i",
                str(results_dir / "analyzer-result.json"),
                "-o",
                str(results_dir),
                "-f",
                "PlainTextTemplate",
            ],
        )

        notice_path = results_dir / NOTICE_FILE
        if not notice_path.exists():
            raise AnalysisError(target, f"reporter did not write {notice_path}")

        output_path = workspace / target.output
        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(notice_path, output_path)
        logger.info(f"Wrote {output_path}")

        return AttributionReport(
            target=target,
            results_dir=results_dir,
            notice_path=notice_path,
            output_path=output_path,
        )


def _template_env() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(Path(__file__).parent / "templates")),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_ort_config(
    package_managers: Sequence[str] = DEFAULT_PACKAGE_MANAGERS,
    allow_dynamic_versions: bool = True,
) -> str:
    """Render the ORT ``config.yml`` contents."""
    template = _template_env().get_template("config.yml.j2")
    return template.render(
        package_managers=list(package_managers),
        allow_dynamic_versions=allow_dynamic_versions,
    )


def write_ort_config(
    config_dir: str | Path,
    package_managers: Sequence[str] = DEFAULT_PACKAGE_MANAGERS,
    allow_dynamic_versions: bool = True,
) -> Path:
    """Write the ORT configuration file into ``config_dir``.

    Returns:
        Path of the written ``config.yml``
    """
    config_dir = Path(config_dir).expanduser()
    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yml"
    config_path.write_text(
        render_ort_config(package_managers, allow_dynamic_versions), encoding="utf-8"
    )
    logger.info(f"Wrote ORT config to {config_path}")
    return config_path


def missing_prerequisites(
    names: Sequence[str] = PREREQUISITES, path: Optional[str] = None
) -> List[str]:
    """Return the executables from ``names`` that are not on ``PATH``."""
    found: Dict[str, Optional[str]] = {name: shutil.which(name, path=path) for name in names}
    return [name for name, location in found.items() if location is None]
