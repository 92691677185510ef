"""Error types for kubelaunch.

Every failure in the bootstrap flow is a KubelaunchError. Components raise,
the CLI layer catches, prints the message and exits with ``exit_code``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Process exit codes
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_COMMAND_NOT_FOUND = 127


@dataclass
class KubelaunchError(Exception):
    """Base error class for kubelaunch errors."""

    message: str
    exit_code: int = EXIT_FAILURE

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "exit_code": self.exit_code,
        }


@dataclass
class ConfigError(KubelaunchError):
    """Invalid configuration value."""

    exit_code: int = EXIT_USAGE
    key: str | None = None


@dataclass
class EnvironmentMissingError(KubelaunchError):
    """A required external tool is not installed."""

    exit_code: int = EXIT_COMMAND_NOT_FOUND
    tool: str = ""


@dataclass
class CommandError(KubelaunchError):
    """External command exited non-zero or timed out."""

    command: list[str] = field(default_factory=list)
    stderr: str = ""


@dataclass
class CommandTimeoutError(CommandError):
    """External command did not finish within its timeout."""

    timeout_seconds: float | None = None


@dataclass
class ClusterError(KubelaunchError):
    """Cluster could not be found, created or reached."""


@dataclass
class IngressInstallError(KubelaunchError):
    """Ingress controller manifest could not be applied."""


@dataclass
class ManifestApplyError(KubelaunchError):
    """Manifest directory missing, empty, or rejected by the cluster."""

    path: str | None = None


@dataclass
class ReadinessTimeoutError(KubelaunchError):
    """Pods did not become ready before the timeout."""

    selector: str = ""
    namespace: str = ""
    timeout_seconds: float = 0.0
    pods: list[str] = field(default_factory=list)


@dataclass
class PortForwardError(KubelaunchError):
    """Port-forward session failed to start or dropped."""


def wrap_command_error(
    error: CommandError,
    error_cls: type[KubelaunchError],
    prefix: str,
) -> KubelaunchError:
    """Re-raise a command failure as a step error, keeping its exit status.

    Args:
        error: The underlying command failure.
        error_cls: Step error class to build.
        prefix: Message prefix naming the failed step.

    Returns:
        Instance of error_cls.
    """
    detail = error.stderr or error.message
    return error_cls(message=f"{prefix}: {detail}", exit_code=error.exit_code)
