"""Readiness polling for the bootstrap flow.

Poller implements "check a condition every interval until it holds or the
timeout elapses". ReadinessWaiter uses it to block until every pod matching
a label selector reports the Ready condition.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from ..errors import CommandTimeoutError, ReadinessTimeoutError
from .kubectl import Kubectl

logger = structlog.get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 2.0
DEFAULT_TIMEOUT_SECONDS = 60.0

# Floor for a single kubectl call made at or just before the deadline
MIN_CHECK_TIMEOUT_SECONDS = 1.0


@dataclass
class PollResult:
    """Result of a polling run."""

    satisfied: bool
    attempts: int = 0
    elapsed_seconds: float = 0.0


class Poller:
    """Poll a condition until true or timeout."""

    def __init__(
        self,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize poller.

        Args:
            interval_seconds: Seconds between checks.
            timeout_seconds: Total time budget.
            clock: Monotonic clock.
            sleep: Sleep function.
        """
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.sleep = sleep

    def poll(
        self,
        condition: Callable[[], bool],
        on_attempt: Callable[[int, float], None] | None = None,
    ) -> PollResult:
        """Check condition until it holds or the timeout elapses.

        The condition is checked once more at the deadline, so a timeout
        always means the last check failed.

        Args:
            condition: Callable returning True when done. Exceptions propagate.
            on_attempt: Optional callback called with (attempt, elapsed_seconds)
                       after each failed check.

        Returns:
            PollResult with outcome and timing.
        """
        start = self.clock()
        attempt = 0

        while True:
            attempt += 1
            if condition():
                return PollResult(True, attempt, self.clock() - start)

            elapsed = self.clock() - start
            if on_attempt:
                on_attempt(attempt, elapsed)

            if elapsed >= self.timeout_seconds:
                return PollResult(False, attempt, elapsed)

            self.sleep(min(self.interval_seconds, self.timeout_seconds - elapsed))


@dataclass
class PodStatus:
    """Readiness of a single pod."""

    name: str
    phase: str
    ready: bool
    conditions: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_pod(cls, pod: dict[str, Any]) -> PodStatus:
        """Build from a kubectl pod object."""
        status = pod.get("status", {})
        conditions = {c.get("type", ""): c.get("status", "") for c in status.get("conditions", [])}
        return cls(
            name=pod.get("metadata", {}).get("name", "unknown"),
            phase=status.get("phase", "Unknown"),
            ready=conditions.get("Ready") == "True",
            conditions=conditions,
        )


def all_ready(pods: list[PodStatus]) -> bool:
    """True when at least one pod exists and every pod is ready."""
    return bool(pods) and all(p.ready for p in pods)


class ReadinessWaiter:
    """Wait for pods matching a selector to become ready."""

    def __init__(
        self,
        kubectl: Kubectl,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.kubectl = kubectl
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.sleep = sleep

    def check(
        self, namespace: str, selector: str, timeout_seconds: float | None = None
    ) -> list[PodStatus]:
        """Current readiness of matching pods."""
        pods = self.kubectl.get_pods(namespace, selector, timeout_seconds=timeout_seconds)
        return [PodStatus.from_pod(p) for p in pods]

    def wait(
        self,
        namespace: str,
        selector: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        on_attempt: Callable[[int, float], None] | None = None,
    ) -> list[PodStatus]:
        """Block until all matching pods are ready.

        Each kubectl call is limited to the time left, so a stalled API
        server cannot hold the wait past the timeout.

        Args:
            namespace: K8s namespace.
            selector: Label selector, e.g. app=sample.
            timeout_seconds: Timeout in seconds.
            on_attempt: Optional progress callback.

        Returns:
            Final pod statuses (all ready).

        Raises:
            ReadinessTimeoutError: Pods not ready before the timeout.
        """
        last: list[PodStatus] = []
        deadline = self.clock() + timeout_seconds

        def condition() -> bool:
            nonlocal last
            remaining = max(deadline - self.clock(), MIN_CHECK_TIMEOUT_SECONDS)
            last = self.check(namespace, selector, timeout_seconds=remaining)
            return all_ready(last)

        poller = Poller(self.interval_seconds, timeout_seconds, self.clock, self.sleep)
        try:
            result = poller.poll(condition, on_attempt)
        except CommandTimeoutError as e:
            raise ReadinessTimeoutError(
                f"Pods matching '{selector}' in namespace '{namespace}' not ready "
                f"after {timeout_seconds:g}s: kubectl did not answer in time",
                selector=selector,
                namespace=namespace,
                timeout_seconds=timeout_seconds,
            ) from e

        if result.satisfied:
            logger.info(
                "Pods ready",
                selector=selector,
                namespace=namespace,
                count=len(last),
                elapsed=round(result.elapsed_seconds, 1),
            )
            return last

        if last:
            pods = [f"{p.name} ({p.phase}, ready={str(p.ready).lower()})" for p in last]
            detail = ", ".join(pods)
        else:
            pods = []
            detail = "no pods matched"
        raise ReadinessTimeoutError(
            f"Pods matching '{selector}' in namespace '{namespace}' not ready "
            f"after {timeout_seconds:g}s: {detail}",
            selector=selector,
            namespace=namespace,
            timeout_seconds=timeout_seconds,
            pods=pods,
        )
