"""Ingress controller installation.

Installs ingress-nginx from its upstream static manifest when the
controller namespace is missing, then polls the controller pods until
they are ready.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from ..config import TARGET_KIND
from ..errors import CommandError, IngressInstallError, wrap_command_error
from .kubectl import Kubectl
from .readiness import ReadinessWaiter

logger = structlog.get_logger(__name__)

INGRESS_NAMESPACE = "ingress-nginx"
CONTROLLER_SELECTOR = "app.kubernetes.io/component=controller"

_MANIFEST_BASE = (
    "https://raw.githubusercontent.com/kubernetes/ingress-nginx/main/deploy/static/provider"
)
INGRESS_MANIFESTS = {
    "kind": f"{_MANIFEST_BASE}/kind/deploy.yaml",
    "cloud": f"{_MANIFEST_BASE}/cloud/deploy.yaml",
}

DEFAULT_TIMEOUT_SECONDS = 90.0


def manifest_url_for(target: str) -> str:
    """Upstream manifest URL for a deployment target."""
    return INGRESS_MANIFESTS.get(target, INGRESS_MANIFESTS[TARGET_KIND])


class IngressInstaller:
    """Install the ingress-nginx controller if absent."""

    def __init__(
        self,
        kubectl: Kubectl,
        waiter: ReadinessWaiter,
        manifest_url: str = INGRESS_MANIFESTS[TARGET_KIND],
        namespace: str = INGRESS_NAMESPACE,
        selector: str = CONTROLLER_SELECTOR,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initialize installer.

        Args:
            kubectl: kubectl client.
            waiter: Readiness waiter used after install.
            manifest_url: Controller manifest URL.
            namespace: Namespace the manifest creates.
            selector: Label selector of the controller pods.
            timeout_seconds: Readiness timeout after install.
        """
        self.kubectl = kubectl
        self.waiter = waiter
        self.manifest_url = manifest_url
        self.namespace = namespace
        self.selector = selector
        self.timeout_seconds = timeout_seconds

    def is_installed(self) -> bool:
        """Check for the controller namespace."""
        return self.kubectl.namespace_exists(self.namespace)

    def install(self, on_attempt: Callable[[int, float], None] | None = None) -> bool:
        """Install the controller unless its namespace already exists.

        Returns:
            True if the controller was installed, False if already present.

        Raises:
            IngressInstallError: Manifest could not be fetched or applied.
            ReadinessTimeoutError: Controller not ready in time.
        """
        if self.is_installed():
            logger.info("Ingress controller already installed", namespace=self.namespace)
            return False

        logger.info("Installing ingress controller", url=self.manifest_url)
        try:
            self.kubectl.apply(self.manifest_url)
        except CommandError as e:
            raise wrap_command_error(
                e, IngressInstallError, "Failed to apply ingress controller manifest"
            ) from e

        self.waiter.wait(self.namespace, self.selector, self.timeout_seconds, on_attempt)
        return True
