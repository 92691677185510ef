"""Kubernetes manifest generation and application.

ManifestGenerator writes the sample app's Deployment, Service and Ingress.
ManifestApplier applies every manifest found in a directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

from ..errors import CommandError, ManifestApplyError, wrap_command_error
from .kubectl import Kubectl

logger = structlog.get_logger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")

DEFAULT_IMAGE = "nginxdemos/hello:plain-text"


@dataclass
class AppConfig:
    """Configuration for the sample app manifests."""

    name: str = "sample"
    namespace: str = "default"
    image: str = DEFAULT_IMAGE
    replicas: int = 1
    container_port: int = 80
    service_port: int = 80
    health_path: str = "/"
    ingress_host: str | None = None
    ingress_class: str = "nginx"

    @property
    def labels(self) -> dict[str, str]:
        return {"app": self.name}

    @property
    def selector(self) -> str:
        """Label selector matching the app's pods."""
        return ",".join(f"{k}={v}" for k, v in self.labels.items())


class ManifestGenerator:
    """Generate Kubernetes manifests for the sample app."""

    def generate(self, config: AppConfig, output_dir: Path) -> list[Path]:
        """Generate manifests in output_dir.

        Args:
            config: App configuration.
            output_dir: Directory to write to (created if missing).

        Returns:
            Paths of the written files.
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        documents: list[tuple[str, list[dict[str, Any]]]] = []
        if config.namespace != "default":
            # Sorted first so the namespace exists before anything lands in it
            documents.append(("00-namespace.yaml", [self._build_namespace(config)]))
        documents.extend(
            [
                ("deployment.yaml", [self._build_deployment(config)]),
                ("ingress.yaml", [self._build_ingress(config)]),
                ("service.yaml", [self._build_service(config)]),
            ]
        )

        written = []
        for filename, manifests in documents:
            path = output_dir / filename
            self._write_manifest(path, manifests)
            written.append(path)
        return written

    def _write_manifest(self, path: Path, manifests: list[dict[str, Any]]) -> None:
        """Write manifests to file (multi-document YAML)."""
        with open(path, "w") as f:
            yaml.dump_all(manifests, f, default_flow_style=False, sort_keys=False)

    def _metadata(self, config: AppConfig) -> dict[str, Any]:
        return {"name": config.name, "namespace": config.namespace, "labels": config.labels}

    def _build_namespace(self, config: AppConfig) -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {"name": config.namespace},
        }

    def _build_deployment(self, config: AppConfig) -> dict[str, Any]:
        probe = {
            "httpGet": {"path": config.health_path, "port": config.container_port},
            "initialDelaySeconds": 2,
            "periodSeconds": 5,
        }
        return {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": self._metadata(config),
            "spec": {
                "replicas": config.replicas,
                "selector": {"matchLabels": config.labels},
                "template": {
                    "metadata": {"labels": config.labels},
                    "spec": {
                        "containers": [
                            {
                                "name": config.name,
                                "image": config.image,
                                "ports": [{"containerPort": config.container_port}],
                                "readinessProbe": probe,
                                "livenessProbe": {**probe, "initialDelaySeconds": 10},
                                "resources": {
                                    "requests": {"cpu": "50m", "memory": "32Mi"},
                                    "limits": {"cpu": "250m", "memory": "128Mi"},
                                },
                            }
                        ],
                    },
                },
            },
        }

    def _build_service(self, config: AppConfig) -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": self._metadata(config),
            "spec": {
                "selector": config.labels,
                "ports": [
                    {
                        "name": "http",
                        "port": config.service_port,
                        "targetPort": config.container_port,
                    }
                ],
            },
        }

    def _build_ingress(self, config: AppConfig) -> dict[str, Any]:
        rule: dict[str, Any] = {
            "http": {
                "paths": [
                    {
                        "path": "/",
                        "pathType": "Prefix",
                        "backend": {
                            "service": {
                                "name": config.name,
                                "port": {"number": config.service_port},
                            }
                        },
                    }
                ]
            }
        }
        if config.ingress_host:
            rule = {"host": config.ingress_host, **rule}
        return {
            "apiVersion": "networking.k8s.io/v1",
            "kind": "Ingress",
            "metadata": self._metadata(config),
            "spec": {"ingressClassName": config.ingress_class, "rules": [rule]},
        }


class ManifestApplier:
    """Apply a directory of manifests using kubectl."""

    def __init__(self, kubectl: Kubectl):
        self.kubectl = kubectl

    def discover(self, manifest_dir: Path) -> list[Path]:
        """Find manifest files in a directory, sorted by name.

        Raises:
            ManifestApplyError: Directory missing or holds no manifests.
        """
        if not manifest_dir.is_dir():
            raise ManifestApplyError(
                f"Manifest directory not found: {manifest_dir}", path=str(manifest_dir)
            )
        files = sorted(
            p for p in manifest_dir.iterdir() if p.is_file() and p.suffix in MANIFEST_SUFFIXES
        )
        if not files:
            raise ManifestApplyError(
                f"No manifests found in {manifest_dir}", path=str(manifest_dir)
            )
        return files

    def apply(self, manifest_dir: Path) -> list[Path]:
        """Apply all manifests in directory.

        Files applied before a failure stay applied.

        Args:
            manifest_dir: Directory containing manifests.

        Returns:
            Applied files in order.

        Raises:
            ManifestApplyError: On the first file kubectl rejects.
        """
        files = self.discover(manifest_dir)
        for path in files:
            try:
                output = self.kubectl.apply(path)
            except CommandError as e:
                raise wrap_command_error(
                    e, ManifestApplyError, f"Failed to apply {path.name}"
                ) from e
            logger.info("Applied manifest", file=path.name, result=output)
        return files

    def delete(self, manifest_dir: Path) -> list[Path]:
        """Delete the resources of every manifest, in reverse order."""
        files = list(reversed(self.discover(manifest_dir)))
        for path in files:
            try:
                self.kubectl.delete(path)
            except CommandError as e:
                raise wrap_command_error(
                    e, ManifestApplyError, f"Failed to delete {path.name}"
                ) from e
        return files
