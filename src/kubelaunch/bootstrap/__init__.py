"""Bootstrap package for deploying the sample app to Kubernetes.

This package provides the `kubelaunch up` flow which:
1. Checks for (and creates) the cluster
2. Installs the ingress controller if missing
3. Applies the manifest directory
4. Waits for pods to become ready
5. Forwards a local port to the app's service
"""

from .cluster import CloudCluster, KindCluster, build_kind_config
from .ingress import CONTROLLER_SELECTOR, INGRESS_NAMESPACE, IngressInstaller, manifest_url_for
from .kubectl import CommandRunner, KubeContext, Kubectl
from .manifests import AppConfig, ManifestApplier, ManifestGenerator
from .pipeline import BootstrapPipeline, BootstrapResult, BootstrapStep, StepOutcome
from .portforward import PortForwardSession, ProbeResult, TunnelProbe
from .prerequisites import PrerequisiteChecker, ToolDetector, ToolInfo, required_tools
from .readiness import Poller, PodStatus, PollResult, ReadinessWaiter, all_ready

__all__ = [
    # Commands
    "CommandRunner",
    "KubeContext",
    "Kubectl",
    # Prerequisites
    "PrerequisiteChecker",
    "ToolDetector",
    "ToolInfo",
    "required_tools",
    # Cluster
    "KindCluster",
    "CloudCluster",
    "build_kind_config",
    # Ingress
    "IngressInstaller",
    "INGRESS_NAMESPACE",
    "CONTROLLER_SELECTOR",
    "manifest_url_for",
    # Manifests
    "AppConfig",
    "ManifestGenerator",
    "ManifestApplier",
    # Readiness
    "Poller",
    "PollResult",
    "PodStatus",
    "ReadinessWaiter",
    "all_ready",
    # Port forwarding
    "PortForwardSession",
    "TunnelProbe",
    "ProbeResult",
    # Pipeline
    "BootstrapPipeline",
    "BootstrapResult",
    "BootstrapStep",
    "StepOutcome",
]
