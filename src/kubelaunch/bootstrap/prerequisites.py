"""Prerequisite detection for the bootstrap flow.

This module provides detection of the external tools each target needs:
kind and Docker for a local cluster, kubectl for every target.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass

from ..config import TARGET_KIND
from ..errors import EnvironmentMissingError

# Version query and install hint per tool
TOOLS: dict[str, tuple[list[str], str]] = {
    "kubectl": (
        ["kubectl", "version", "--client", "-o", "yaml"],
        "https://kubernetes.io/docs/tasks/tools/",
    ),
    "kind": (
        ["kind", "version"],
        "https://kind.sigs.k8s.io/docs/user/quick-start/#installation",
    ),
    "docker": (
        ["docker", "version", "--format", "{{.Server.Version}}"],
        "https://docs.docker.com/get-docker/",
    ),
}


@dataclass
class ToolInfo:
    """Tool detection result."""

    name: str
    available: bool
    version: str | None = None
    error: str | None = None


class ToolDetector:
    """Detect a CLI tool and its version."""

    def detect(self, name: str) -> ToolInfo:
        """Check that a tool is on PATH and responds to a version query."""
        version_cmd, install_url = TOOLS[name]
        if not shutil.which(name):
            return ToolInfo(
                name=name,
                available=False,
                error=f"{name} not found. Install {name}: {install_url}",
            )

        try:
            result = subprocess.run(
                version_cmd,
                capture_output=True,
                text=True,
                timeout=10,
            )
        except subprocess.TimeoutExpired:
            return ToolInfo(name=name, available=False, error=f"{name} not responding (timeout)")

        if result.returncode != 0:
            return ToolInfo(
                name=name,
                available=False,
                error=f"{name} not responding: {result.stderr.strip()}",
            )

        version = result.stdout.strip().splitlines()[0] if result.stdout.strip() else None
        return ToolInfo(name=name, available=True, version=version)


def required_tools(target: str) -> list[str]:
    """Tools needed for a deployment target."""
    if target == TARGET_KIND:
        return ["docker", "kind", "kubectl"]
    return ["kubectl"]


class PrerequisiteChecker:
    """Check all tools a target needs."""

    def __init__(self, detector: ToolDetector | None = None):
        self.detector = detector or ToolDetector()

    def check(self, target: str) -> list[ToolInfo]:
        """Detect every required tool.

        Returns:
            ToolInfo per required tool, in check order.

        Raises:
            EnvironmentMissingError: On the first unavailable tool.
        """
        results = []
        for name in required_tools(target):
            info = self.detector.detect(name)
            if not info.available:
                raise EnvironmentMissingError(info.error or f"{name} unavailable", tool=name)
            results.append(info)
        return results
