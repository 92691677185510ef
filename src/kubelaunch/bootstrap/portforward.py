"""Port forwarding for the bootstrap flow.

PortForwardSession wraps a `kubectl port-forward` child process in a handle
that can be started, waited on and stopped. TunnelProbe checks that HTTP
traffic actually makes it through the tunnel.
"""

from __future__ import annotations

import asyncio
import subprocess
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import IO

import httpx
import structlog

from ..errors import KubelaunchError, PortForwardError
from .kubectl import Kubectl

logger = structlog.get_logger(__name__)

# kubectl exits within this window when the target or port is bad
STARTUP_GRACE_SECONDS = 1.0
STOP_TIMEOUT_SECONDS = 5.0

# Lines of kubectl stderr quoted in errors
STDERR_TAIL_LINES = 3


class PortForwardSession:
    """A single port-forward tunnel for the lifetime of the process."""

    def __init__(
        self,
        kubectl: Kubectl,
        namespace: str,
        target: str,
        local_port: int,
        remote_port: int,
        address: str = "127.0.0.1",
        startup_grace_seconds: float = STARTUP_GRACE_SECONDS,
    ):
        """Initialize session.

        Args:
            kubectl: kubectl client.
            namespace: K8s namespace.
            target: Forward target, e.g. svc/sample.
            local_port: Local port to listen on.
            remote_port: Remote port on the target.
            address: Local bind address.
            startup_grace_seconds: How long the process must survive to count
                as started.
        """
        self.kubectl = kubectl
        self.namespace = namespace
        self.target = target
        self.local_port = local_port
        self.remote_port = remote_port
        self.address = address
        self.startup_grace_seconds = startup_grace_seconds
        self._process: subprocess.Popen | None = None
        self._stderr_log: IO[str] | None = None
        self._stopped = False

    @property
    def url(self) -> str:
        return f"http://{self.address}:{self.local_port}"

    @property
    def is_running(self) -> bool:
        """Whether the tunnel process is alive."""
        return self._process is not None and self._process.poll() is None

    def _stderr_tail(self) -> str:
        if self._stderr_log is None or self._stderr_log.closed:
            return ""
        self._stderr_log.seek(0)
        lines = self._stderr_log.read().strip().splitlines()
        return "\n".join(lines[-STDERR_TAIL_LINES:])

    def _close_log(self) -> None:
        if self._stderr_log is not None:
            self._stderr_log.close()
            self._stderr_log = None

    def _failure(self, returncode: int, what: str) -> PortForwardError:
        stderr = self._stderr_tail()
        self._close_log()
        detail = f": {stderr}" if stderr else ""
        return PortForwardError(
            f"Port-forward to {self.target} {what} (exit code {returncode}){detail}",
            exit_code=returncode or 1,
        )

    def start(self) -> PortForwardSession:
        """Start the tunnel.

        Raises:
            PortForwardError: kubectl exited during the startup grace period.
        """
        if self.is_running:
            return self

        self._stopped = False
        # kubectl logs a line per broken connection for as long as it runs
        self._stderr_log = tempfile.TemporaryFile(mode="w+")
        try:
            self._process = self.kubectl.port_forward(
                self.namespace,
                self.target,
                self.local_port,
                self.remote_port,
                self.address,
                stderr=self._stderr_log,
            )
        except KubelaunchError:
            self._close_log()
            raise
        try:
            returncode = self._process.wait(timeout=self.startup_grace_seconds)
        except subprocess.TimeoutExpired:
            logger.info(
                "Port-forward started",
                target=self.target,
                local_port=self.local_port,
                remote_port=self.remote_port,
            )
            return self
        raise self._failure(returncode, "failed to start")

    def wait(self) -> int:
        """Block until the tunnel process exits.

        Returns:
            0 if the session was stopped through stop().

        Raises:
            PortForwardError: The tunnel dropped on its own.
        """
        if self._process is None:
            raise PortForwardError("Port-forward session not started")
        returncode = self._process.wait()
        if self._stopped:
            self._close_log()
            return 0
        raise self._failure(returncode, "exited unexpectedly")

    def stop(self, timeout_seconds: float = STOP_TIMEOUT_SECONDS) -> None:
        """Stop the tunnel, killing it if it ignores SIGTERM."""
        self._stopped = True
        if not self.is_running:
            self._close_log()
            return
        self._process.terminate()
        try:
            self._process.wait(timeout=timeout_seconds)
        except subprocess.TimeoutExpired:
            logger.warning("Port-forward did not stop, killing", target=self.target)
            self._process.kill()
            self._process.wait()
        self._close_log()
        logger.info("Port-forward stopped", target=self.target)

    def __enter__(self) -> PortForwardSession:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


@dataclass
class ProbeResult:
    """Result of a tunnel probe."""

    reachable: bool
    status_code: int | None = None
    attempts: int = 0
    elapsed_seconds: float = 0.0
    error: str | None = None


class TunnelProbe:
    """Probe a forwarded URL until any HTTP response comes back."""

    def __init__(
        self,
        max_attempts: int = 5,
        interval_seconds: float = 1.0,
        timeout_seconds: float = 3.0,
    ):
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds

    async def wait_until_reachable(
        self,
        url: str,
        on_attempt: Callable[[int, int, str | None], None] | None = None,
    ) -> ProbeResult:
        """Request url until a response arrives or attempts run out.

        Any HTTP status counts as reachable: the probe checks the tunnel,
        not the app's routes.

        Args:
            url: Forwarded URL.
            on_attempt: Called after each failed attempt with
                (attempt, max_attempts, error).
        """
        started = time.monotonic()
        error: str | None = None

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    response = await client.get(url)
                except httpx.HTTPError as e:
                    error = _describe(e)
                else:
                    logger.debug("Tunnel reachable", url=url, status=response.status_code)
                    return ProbeResult(
                        reachable=True,
                        status_code=response.status_code,
                        attempts=attempt,
                        elapsed_seconds=time.monotonic() - started,
                    )

                if on_attempt:
                    on_attempt(attempt, self.max_attempts, error)
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.interval_seconds)

        return ProbeResult(
            reachable=False,
            attempts=self.max_attempts,
            elapsed_seconds=time.monotonic() - started,
            error=f"No response through {url} after {self.max_attempts} attempts ({error})",
        )

    def wait_until_reachable_sync(
        self,
        url: str,
        on_attempt: Callable[[int, int, str | None], None] | None = None,
    ) -> ProbeResult:
        """Blocking variant of wait_until_reachable."""
        return asyncio.run(self.wait_until_reachable(url, on_attempt))


def _describe(error: httpx.HTTPError) -> str:
    if isinstance(error, httpx.ConnectError):
        return "Connection refused"
    if isinstance(error, httpx.TimeoutException):
        return "Request timed out"
    return str(error) or type(error).__name__
