"""Command execution and the kubectl client.

Every external tool call goes through CommandRunner so failures surface as
KubelaunchError subclasses. Kubectl wraps the handful of kubectl verbs the
bootstrap flow needs, always against an explicit KubeContext.
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

import structlog

from ..errors import CommandError, CommandTimeoutError, EnvironmentMissingError

logger = structlog.get_logger(__name__)


class CommandRunner:
    """Run external CLI tools."""

    def __init__(self, timeout_seconds: float | None = None):
        """Initialize runner.

        Args:
            timeout_seconds: Default timeout for each command (None = no limit).
        """
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        cmd: list[str],
        check: bool = True,
        timeout_seconds: float | None = None,
    ) -> subprocess.CompletedProcess:
        """Run a command to completion and capture its output.

        Args:
            cmd: Command and arguments.
            check: Raise CommandError on non-zero exit.
            timeout_seconds: Override for the default timeout.

        Returns:
            Completed process with text stdout/stderr.

        Raises:
            EnvironmentMissingError: The executable is not installed.
            CommandError: Non-zero exit (when check) or timeout.
        """
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds
        logger.debug("Running command", command=" ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise EnvironmentMissingError(
                f"{cmd[0]} not found. Is {cmd[0]} installed?", tool=cmd[0]
            ) from e
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(
                f"{cmd[0]} timed out after {timeout}s",
                command=cmd,
                timeout_seconds=timeout,
            ) from e

        if check and result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.debug("Command failed", command=cmd[0], returncode=result.returncode)
            raise CommandError(
                f"{' '.join(cmd[:3])} failed with exit code {result.returncode}",
                exit_code=result.returncode,
                command=cmd,
                stderr=stderr,
            )
        return result

    def start(
        self, cmd: list[str], stderr: IO[str] | int = subprocess.DEVNULL
    ) -> subprocess.Popen:
        """Start a long-running command in the background.

        stdout is discarded. stderr goes to DEVNULL unless a file is given.
        Never a pipe: nothing drains it while the command runs.

        Raises:
            EnvironmentMissingError: The executable is not installed.
        """
        logger.debug("Starting command", command=" ".join(cmd))
        try:
            return subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=stderr,
                text=True,
            )
        except FileNotFoundError as e:
            raise EnvironmentMissingError(
                f"{cmd[0]} not found. Is {cmd[0]} installed?", tool=cmd[0]
            ) from e


@dataclass
class KubeContext:
    """Explicit cluster access parameters."""

    kubeconfig: str | None = None
    context: str | None = None

    def kubectl_cmd(self) -> list[str]:
        """Build base kubectl command."""
        cmd = ["kubectl"]
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        if self.context:
            cmd.extend(["--context", self.context])
        return cmd


class Kubectl:
    """Thin kubectl client bound to one KubeContext."""

    def __init__(
        self,
        kube: KubeContext | None = None,
        runner: CommandRunner | None = None,
    ):
        self.kube = kube or KubeContext()
        self.runner = runner or CommandRunner()

    def _cmd(self, *args: str, namespace: str | None = None) -> list[str]:
        cmd = self.kube.kubectl_cmd()
        if namespace:
            cmd.extend(["-n", namespace])
        cmd.extend(args)
        return cmd

    def cluster_reachable(self) -> tuple[bool, str]:
        """Check API server connectivity.

        Returns:
            Tuple of (reachable, cluster-info output or error text).
        """
        result = self.runner.run(self._cmd("cluster-info"), check=False, timeout_seconds=30)
        if result.returncode == 0:
            return True, result.stdout.strip()
        return False, (result.stderr or "").strip()

    def namespace_exists(self, namespace: str) -> bool:
        """Check whether a namespace exists.

        Uses --ignore-not-found so a missing namespace is distinguishable
        from an unreachable cluster, which raises.
        """
        result = self.runner.run(
            self._cmd("get", "namespace", namespace, "--ignore-not-found", "-o", "name")
        )
        return bool(result.stdout.strip())

    def apply(self, source: str | Path, namespace: str | None = None) -> str:
        """Apply a manifest file or URL.

        Returns:
            kubectl's summary of applied resources.
        """
        result = self.runner.run(self._cmd("apply", "-f", str(source), namespace=namespace))
        return result.stdout.strip()

    def delete(self, source: str | Path) -> str:
        """Delete the resources in a manifest file, ignoring missing ones."""
        result = self.runner.run(self._cmd("delete", "-f", str(source), "--ignore-not-found"))
        return result.stdout.strip()

    def get_pods(
        self,
        namespace: str,
        selector: str | None = None,
        timeout_seconds: float | None = None,
    ) -> list[dict[str, Any]]:
        """List pods as raw JSON objects.

        Args:
            namespace: Namespace to query.
            selector: Optional label selector.
            timeout_seconds: Limit for the kubectl call.

        Returns:
            List of pod objects (the ``items`` array).
        """
        args = ["get", "pods", "-o", "json"]
        if selector:
            args.extend(["-l", selector])
        result = self.runner.run(
            self._cmd(*args, namespace=namespace), timeout_seconds=timeout_seconds
        )
        try:
            data = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as e:
            raise CommandError(f"Unexpected kubectl output: {e}", command=args) from e
        return data.get("items", [])

    def port_forward(
        self,
        namespace: str,
        target: str,
        local_port: int,
        remote_port: int,
        address: str = "127.0.0.1",
        stderr: IO[str] | int = subprocess.DEVNULL,
    ) -> subprocess.Popen:
        """Start port forwarding.

        Args:
            namespace: K8s namespace.
            target: Resource to forward to (e.g. svc/sample).
            local_port: Local port to listen on.
            remote_port: Port on the target.
            address: Local bind address.
            stderr: File receiving kubectl diagnostics.

        Returns:
            Popen process for the port-forward.
        """
        return self.runner.start(
            self._cmd(
                "port-forward",
                target,
                f"{local_port}:{remote_port}",
                "--address",
                address,
                namespace=namespace,
            ),
            stderr=stderr,
        )
