"""Unit tests for the ingress controller installer."""

from __future__ import annotations

import pytest

from kubelaunch.bootstrap import (
    CONTROLLER_SELECTOR,
    INGRESS_NAMESPACE,
    IngressInstaller,
    Kubectl,
    ReadinessWaiter,
    manifest_url_for,
)
from kubelaunch.errors import IngressInstallError, ReadinessTimeoutError
from tests.mocks import make_pod


@pytest.fixture
def installer(fake_tools, fake_clock):
    kubectl = Kubectl()
    waiter = ReadinessWaiter(kubectl, 2.0, fake_clock, fake_clock.sleep)
    return IngressInstaller(kubectl, waiter, timeout_seconds=90)


class TestManifestUrl:
    """Tests for manifest URL selection."""

    def test_provider_flavours(self):
        assert manifest_url_for("kind").endswith("/provider/kind/deploy.yaml")
        assert manifest_url_for("cloud").endswith("/provider/cloud/deploy.yaml")


class TestIngressInstaller:
    """Tests for IngressInstaller."""

    def test_install_when_missing(self, installer, fake_tools):
        assert installer.install() is True

        assert manifest_url_for("kind") in fake_tools.applied
        assert INGRESS_NAMESPACE in fake_tools.namespaces
        # Polled the controller pods after applying
        pod_check = fake_tools.index_of("kubectl", "get", "pods")
        assert pod_check > fake_tools.index_of("kubectl", "apply", "-f")

    def test_existing_namespace_skips_install(self, installer, fake_tools):
        fake_tools.namespaces.add(INGRESS_NAMESPACE)

        assert installer.install() is False
        assert fake_tools.applied == []
        assert not fake_tools.ran("kubectl", "get", "pods")

    def test_remote_manifest_failure(self, installer, fake_tools):
        fake_tools.fail_remote_apply = True

        with pytest.raises(IngressInstallError) as exc_info:
            installer.install()

        assert "unable to read URL" in exc_info.value.message
        assert exc_info.value.exit_code == 1

    def test_controller_never_ready(self, installer, fake_tools, fake_clock):
        fake_tools.pods[CONTROLLER_SELECTOR] = [
            make_pod("ingress-nginx-controller-1", ready=False, phase="ContainerCreating")
        ]

        with pytest.raises(ReadinessTimeoutError):
            installer.install()

        assert fake_clock.now == 90.0
