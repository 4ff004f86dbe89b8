"""Analysis package wrapping the OSS Review Toolkit."""
from __future__ import annotations

from analysis.ort import AnalysisError, AnalysisTool, InstallError, OrtInstaller, OrtTool

__all__ = [
    "AnalysisError",
    "AnalysisTool",
    "InstallError",
    "OrtInstaller",
    "OrtTool",
]
