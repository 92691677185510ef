"""Cluster existence check and lifecycle.

KindCluster manages a local kind cluster: it is created when missing and
configured so the ingress-nginx controller can bind host ports 80/443.
CloudCluster only verifies that an existing managed cluster is reachable.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml

from ..errors import ClusterError, CommandError, wrap_command_error
from ..shared.paths import KIND_DIR
from .kubectl import CommandRunner, Kubectl

logger = structlog.get_logger(__name__)

# How long kind waits for the control plane to be ready
DEFAULT_CREATE_WAIT = "120s"


def build_kind_config(http_port: int = 80, https_port: int = 443) -> dict[str, Any]:
    """Build a kind cluster config for ingress.

    The single control-plane node is labelled ingress-ready and maps the
    host's HTTP/HTTPS ports into the node.
    """
    return {
        "kind": "Cluster",
        "apiVersion": "kind.x-k8s.io/v1alpha4",
        "nodes": [
            {
                "role": "control-plane",
                "kubeadmConfigPatches": [
                    "kind: InitConfiguration\n"
                    "nodeRegistration:\n"
                    "  kubeletExtraArgs:\n"
                    '    node-labels: "ingress-ready=true"\n'
                ],
                "extraPortMappings": [
                    {"containerPort": 80, "hostPort": http_port, "protocol": "TCP"},
                    {"containerPort": 443, "hostPort": https_port, "protocol": "TCP"},
                ],
            }
        ],
    }


class KindCluster:
    """Manage a local kind cluster."""

    def __init__(
        self,
        name: str,
        runner: CommandRunner | None = None,
        config_dir: Path | None = None,
        http_port: int = 80,
        https_port: int = 443,
    ):
        """Initialize cluster manager.

        Args:
            name: Cluster name.
            runner: Command runner.
            config_dir: Where generated kind configs are written.
            http_port: Host port mapped to the node's port 80.
            https_port: Host port mapped to the node's port 443.
        """
        self.name = name
        self.runner = runner or CommandRunner()
        self.config_dir = config_dir or KIND_DIR
        self.http_port = http_port
        self.https_port = https_port

    @property
    def context(self) -> str:
        """kubectl context kind creates for this cluster."""
        return f"kind-{self.name}"

    def list_clusters(self) -> list[str]:
        """Names of all existing kind clusters."""
        result = self.runner.run(["kind", "get", "clusters"])
        # "No kind clusters found." goes to stderr, stdout stays empty
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def exists(self) -> bool:
        """Check whether this cluster exists."""
        return self.name in self.list_clusters()

    def write_config(self) -> Path:
        """Write the kind cluster config file.

        Returns:
            Path to the written config.
        """
        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.config_dir / f"{self.name}.yaml"
        with open(path, "w") as f:
            yaml.dump(
                build_kind_config(self.http_port, self.https_port),
                f,
                default_flow_style=False,
                sort_keys=False,
            )
        return path

    def create(self, wait: str = DEFAULT_CREATE_WAIT) -> None:
        """Create the cluster and block until kind reports the outcome."""
        config_path = self.write_config()
        logger.info("Creating kind cluster", cluster=self.name, config=str(config_path))
        try:
            self.runner.run(
                [
                    "kind",
                    "create",
                    "cluster",
                    "--name",
                    self.name,
                    "--config",
                    str(config_path),
                    "--wait",
                    wait,
                ]
            )
        except CommandError as e:
            raise wrap_command_error(
                e, ClusterError, f"Failed to create cluster '{self.name}'"
            ) from e

    def ensure(self) -> bool:
        """Create the cluster if it does not exist.

        Returns:
            True if the cluster was created, False if it already existed.
        """
        if self.exists():
            logger.info("Cluster already exists", cluster=self.name)
            return False
        self.create()
        return True

    def delete(self) -> bool:
        """Delete the cluster.

        Returns:
            True if a cluster was deleted, False if none existed.
        """
        if not self.exists():
            return False
        try:
            self.runner.run(["kind", "delete", "cluster", "--name", self.name])
        except CommandError as e:
            raise wrap_command_error(
                e, ClusterError, f"Failed to delete cluster '{self.name}'"
            ) from e
        return True


class CloudCluster:
    """Existing managed cluster reached through a kube context."""

    def __init__(self, kubectl: Kubectl):
        self.kubectl = kubectl

    @property
    def name(self) -> str:
        return self.kubectl.kube.context or "current-context"

    def exists(self) -> bool:
        reachable, _ = self.kubectl.cluster_reachable()
        return reachable

    def ensure(self) -> bool:
        """Verify the cluster is reachable. Managed clusters are never created.

        Returns:
            Always False.

        Raises:
            ClusterError: The API server is unreachable.
        """
        reachable, detail = self.kubectl.cluster_reachable()
        if not reachable:
            raise ClusterError(f"Cluster '{self.name}' is not reachable: {detail}")
        return False
