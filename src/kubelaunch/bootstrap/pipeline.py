"""The bootstrap pipeline.

Runs cluster check -> ingress install -> manifest apply -> readiness wait ->
port-forward, strictly in that order. The first failing step raises and no
later step runs; nothing already done is rolled back.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

import structlog

from ..config import TARGET_KIND, BootstrapConfig
from .cluster import CloudCluster, KindCluster
from .ingress import IngressInstaller, manifest_url_for
from .kubectl import CommandRunner, KubeContext, Kubectl
from .manifests import ManifestApplier
from .portforward import PortForwardSession
from .readiness import ReadinessWaiter

logger = structlog.get_logger(__name__)


class BootstrapStep(Enum):
    """Pipeline steps, in execution order."""

    CLUSTER = "cluster"
    INGRESS = "ingress"
    APPLY = "apply"
    READINESS = "readiness"
    FORWARD = "forward"


@dataclass
class StepOutcome:
    """What a completed step did."""

    step: BootstrapStep
    changed: bool
    detail: str = ""


@dataclass
class BootstrapResult:
    """Result of a pipeline run."""

    outcomes: list[StepOutcome] = field(default_factory=list)
    session: PortForwardSession | None = None
    url: str | None = None

    def outcome(self, step: BootstrapStep) -> StepOutcome | None:
        return next((o for o in self.outcomes if o.step == step), None)


class Cluster(Protocol):
    name: str

    def ensure(self) -> bool: ...


class BootstrapPipeline:
    """Bring the sample app up on a cluster."""

    def __init__(
        self,
        config: BootstrapConfig,
        cluster: Cluster,
        ingress: IngressInstaller,
        applier: ManifestApplier,
        waiter: ReadinessWaiter,
        session_factory: Callable[[], PortForwardSession],
        on_step: Callable[[StepOutcome], None] | None = None,
    ):
        self.config = config
        self.cluster = cluster
        self.ingress = ingress
        self.applier = applier
        self.waiter = waiter
        self.session_factory = session_factory
        self.on_step = on_step

    @classmethod
    def from_config(
        cls,
        config: BootstrapConfig,
        runner: CommandRunner | None = None,
        on_step: Callable[[StepOutcome], None] | None = None,
    ) -> BootstrapPipeline:
        """Wire real components for a config."""
        runner = runner or CommandRunner()
        kubectl = Kubectl(KubeContext(config.kubeconfig, config.kube_context), runner)
        waiter = ReadinessWaiter(kubectl, interval_seconds=config.poll_interval)

        cluster: Cluster
        if config.target == TARGET_KIND:
            cluster = KindCluster(config.cluster_name, runner)
        else:
            cluster = CloudCluster(kubectl)

        ingress = IngressInstaller(
            kubectl,
            waiter,
            manifest_url=config.ingress_manifest_url or manifest_url_for(config.target),
            timeout_seconds=config.ingress_timeout,
        )

        def session_factory() -> PortForwardSession:
            return PortForwardSession(
                kubectl,
                config.namespace,
                f"svc/{config.service}",
                config.local_port,
                config.remote_port,
                config.address,
            )

        return cls(
            config,
            cluster,
            ingress,
            ManifestApplier(kubectl),
            waiter,
            session_factory,
            on_step,
        )

    def _record(self, result: BootstrapResult, outcome: StepOutcome) -> None:
        result.outcomes.append(outcome)
        logger.info(
            "Step complete",
            step=outcome.step.value,
            changed=outcome.changed,
            detail=outcome.detail,
        )
        if self.on_step:
            self.on_step(outcome)

    def run(self, forward: bool = True) -> BootstrapResult:
        """Execute the pipeline.

        Args:
            forward: Start the port-forward after readiness. The returned
                session is running; blocking on it is the caller's job.

        Returns:
            BootstrapResult with one outcome per completed step.

        Raises:
            KubelaunchError: From the first failing step.
        """
        config = self.config
        result = BootstrapResult()

        created = self.cluster.ensure()
        self._record(
            result,
            StepOutcome(
                BootstrapStep.CLUSTER,
                created,
                f"created {self.cluster.name}" if created else f"using {self.cluster.name}",
            ),
        )

        installed = self.ingress.install()
        self._record(
            result,
            StepOutcome(
                BootstrapStep.INGRESS,
                installed,
                "controller installed" if installed else "controller already present",
            ),
        )

        manifest_dir = Path(config.manifest_dir)
        applied = self.applier.apply(manifest_dir)
        self._record(
            result,
            StepOutcome(
                BootstrapStep.APPLY,
                True,
                f"{len(applied)} manifest(s) from {manifest_dir}",
            ),
        )

        pods = self.waiter.wait(config.namespace, config.selector, config.readiness_timeout)
        self._record(
            result,
            StepOutcome(BootstrapStep.READINESS, False, f"{len(pods)} pod(s) ready"),
        )

        if not forward:
            return result

        session = self.session_factory().start()
        result.session = session
        result.url = session.url
        self._record(
            result,
            StepOutcome(
                BootstrapStep.FORWARD,
                True,
                f"{session.url} -> {session.target}:{session.remote_port}",
            ),
        )
        return result
