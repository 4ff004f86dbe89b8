"""Tests for ORT installation and invocation."""
from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from analysis.ort import (
    AnalysisError,
    InstallError,
    OrtInstaller,
    OrtTool,
    missing_prerequisites,
    render_ort_config,
    write_ort_config,
)
from models.attribution import AttributionTarget, Ecosystem

PYTHON_TARGET = AttributionTarget(
    Ecosystem.PYTHON, "python", "python/THIRD_PARTY_LICENSES_PYTHON"
)


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


def test_installer_clones_and_builds(tmp_path: Path) -> None:
    """Test that install clones the pinned ref and runs gradle installDist."""
    installer = OrtInstaller(tmp_path / "ort", java_heap="4g")

    with patch("subprocess.run", return_value=completed()) as mock_run:
        with patch.dict("os.environ", {"JAVA_OPTS": "-Dfoo=bar"}):
            installer.install()

    clone_args = mock_run.call_args_list[0][0][0]
    assert clone_args == [
        "git",
        "clone",
        "--branch",
        "26.0.0",
        "--recurse-submodules",
        "https://github.com/oss-review-toolkit/ort",
        str(tmp_path / "ort"),
    ]

    build_call = mock_run.call_args_list[1]
    assert build_call[0][0] == ["./gradlew", "installDist"]
    assert build_call[1]["cwd"] == tmp_path / "ort"
    assert build_call[1]["env"]["JAVA_OPTS"] == "-Dfoo=bar -Xmx4g"


def test_installer_clone_failure(tmp_path: Path) -> None:
    """Test that a failed clone stops before building."""
    installer = OrtInstaller(tmp_path / "ort")

    with patch("subprocess.run", return_value=completed(128, stderr="fatal: no tag")) as mock_run:
        with pytest.raises(InstallError, match="ORT clone failed: fatal: no tag"):
            installer.install()

    assert mock_run.call_count == 1


def test_installer_build_failure(tmp_path: Path) -> None:
    """Test that a failed gradle build raises InstallError."""
    installer = OrtInstaller(tmp_path / "ort")

    with patch(
        "subprocess.run",
        side_effect=[completed(), completed(1, stderr="BUILD FAILED")],
    ):
        with pytest.raises(InstallError) as exc_info:
            installer.install()

    assert exc_info.value.step == "build"


def test_installer_executable(tmp_path: Path) -> None:
    """Test the location of the installed ORT launcher."""
    installer = OrtInstaller(tmp_path / "ort")
    assert installer.executable == tmp_path / "ort/cli/build/install/ort/bin/ort"


def test_tool_run_copies_notice(tmp_path: Path) -> None:
    """Test that analyze and report run and the notice is copied."""
    results_dir = tmp_path / "python" / "ort_results"

    def fake_run(cmd, **kwargs):
        if cmd[1] == "report":
            results_dir.mkdir(parents=True, exist_ok=True)
            (results_dir / "NOTICE_DEFAULT").write_text("requests: Apache-2.0\n")
        return completed()

    with patch("subprocess.run", side_effect=fake_run) as mock_run:
        report = OrtTool("/opt/ort/bin/ort").run(PYTHON_TARGET, tmp_path)

    analyze_cmd = mock_run.call_args_list[0][0][0]
    assert analyze_cmd == [
        "/opt/ort/bin/ort",
        "analyze",
        "-i",
        str(tmp_path / "python"),
        "-o",
        str(results_dir),
        "-f",
        "JSON",
    ]
    report_cmd = mock_run.call_args_list[1][0][0]
    assert report_cmd[1:3] == ["report", "-i"]
    assert report_cmd[3] == str(results_dir / "analyzer-result.json")
    assert report_cmd[-2:] == ["-f", "PlainTextTemplate"]

    assert report.output_path == tmp_path / "python" / "THIRD_PARTY_LICENSES_PYTHON"
    assert report.output_path.read_text() == "requests: Apache-2.0\n"
    assert report.notice_path == results_dir / "NOTICE_DEFAULT"


def test_tool_analyze_failure(tmp_path: Path) -> None:
    """Test that an analyzer failure stops before reporting."""
    with patch("subprocess.run", return_value=completed(2, stderr="no manifests")) as mock_run:
        with pytest.raises(AnalysisError, match="ORT failed for python: no manifests"):
            OrtTool("ort").run(PYTHON_TARGET, tmp_path)

    assert mock_run.call_count == 1
    assert not (tmp_path / "python" / "THIRD_PARTY_LICENSES_PYTHON").exists()


def test_tool_missing_notice(tmp_path: Path) -> None:
    """Test that a reporter run without a notice file is an error."""
    with patch("subprocess.run", return_value=completed()):
        with pytest.raises(AnalysisError, match="did not write"):
            OrtTool("ort").run(PYTHON_TARGET, tmp_path)


def test_render_ort_config() -> None:
    """Test the rendered analyzer configuration."""
    rendered = render_ort_config()
    assert rendered == (
        "ort:\n"
        "  analyzer:\n"
        "    allowDynamicVersions: true\n"
        "    enabledPackageManagers: [Cargo, NPM, PIP, GradleInspector]\n"
    )

    rendered = render_ort_config(["PIP"], allow_dynamic_versions=False)
    assert "allowDynamicVersions: false" in rendered
    assert "enabledPackageManagers: [PIP]" in rendered


def test_write_ort_config(tmp_path: Path) -> None:
    """Test that the config file is written into a created directory."""
    config_path = write_ort_config(tmp_path / ".ort" / "config")
    assert config_path == tmp_path / ".ort" / "config" / "config.yml"
    assert "enabledPackageManagers" in config_path.read_text()


def test_missing_prerequisites(tmp_path: Path) -> None:
    """Test detection of executables absent from PATH."""
    tool = tmp_path / "git"
    tool.write_text("#!/bin/sh\n")
    tool.chmod(0o755)

    assert missing_prerequisites(["git", "java"], path=str(tmp_path)) == ["java"]
