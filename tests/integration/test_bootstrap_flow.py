"""End-to-end bootstrap flow against fake kind/kubectl.

The real pipeline components run; only subprocess.run/Popen are replaced.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from kubelaunch.bootstrap import (
    CONTROLLER_SELECTOR,
    BootstrapPipeline,
    ReadinessWaiter,
    manifest_url_for,
)
from kubelaunch.config import BootstrapConfig
from kubelaunch.errors import ReadinessTimeoutError
from tests.mocks import make_pod

pytestmark = pytest.mark.integration


@pytest.fixture
def config(manifest_dir):
    return BootstrapConfig(manifest_dir=str(manifest_dir))


def _pipeline(config: BootstrapConfig, fake_clock) -> BootstrapPipeline:
    pipeline = BootstrapPipeline.from_config(config)
    # Same kubectl client, fake time
    waiter = ReadinessWaiter(
        pipeline.waiter.kubectl, config.poll_interval, fake_clock, fake_clock.sleep
    )
    pipeline.waiter = waiter
    pipeline.ingress.waiter = waiter
    return pipeline


class TestBootstrapFlow:
    """The five-step flow from a fresh and from a deployed environment."""

    def test_fresh_environment(self, config, fake_tools, forward_process, fake_clock):
        """Create cluster, install controller, apply, wait, forward 8080 -> 80."""
        result = _pipeline(config, fake_clock).run()

        create = fake_tools.index_of("kind", "create", "cluster")
        ingress_apply = fake_tools.calls.index(
            next(c for c in fake_tools.calls if manifest_url_for("kind") in c)
        )

        assert 0 <= create < ingress_apply
        assert fake_tools.applied[0] == manifest_url_for("kind")
        assert len(fake_tools.applied) == 3
        assert result.url == "http://127.0.0.1:8080"
        assert result.session.is_running is True

        # Every kubectl call ran against the kind cluster's context
        kubectl_calls = [c for c in fake_tools.calls if c[0] == "kubectl"]
        assert all(c[1:3] == ["--context", "kind-kubelaunch"] for c in kubectl_calls)

    def test_cluster_created_before_manifests_applied(
        self, config, fake_tools, forward_process, fake_clock
    ):
        _pipeline(config, fake_clock).run()

        create = fake_tools.index_of("kind", "create", "cluster")
        applies = [
            i
            for i, c in enumerate(fake_tools.calls)
            if "apply" in c and any(arg.endswith(".yaml") and "://" not in arg for arg in c)
        ]
        assert applies
        assert all(create < i for i in applies)

    def test_rerun_is_idempotent(self, config, fake_tools, forward_process, fake_clock):
        _pipeline(config, fake_clock).run(forward=False)
        fake_tools.calls.clear()
        fake_tools.applied.clear()

        result = _pipeline(config, fake_clock).run(forward=False)

        assert not fake_tools.ran("kind", "create")
        assert manifest_url_for("kind") not in fake_tools.applied
        assert len(fake_tools.applied) == 2
        assert [o.changed for o in result.outcomes[:2]] == [False, False]

    def test_existing_controller_not_reinstalled(
        self, config, fake_tools, forward_process, fake_clock
    ):
        fake_tools.clusters.add("kubelaunch")
        fake_tools.namespaces.add("ingress-nginx")

        _pipeline(config, fake_clock).run()

        assert manifest_url_for("kind") not in fake_tools.applied
        assert not fake_tools.ran("kubectl", "get", "pods", "-o", "json", "-l", CONTROLLER_SELECTOR)

    def test_readiness_timeout_no_forward(self, config, fake_tools, fake_clock):
        """Pods never ready: exit non-zero after 60s, no port-forward attempted."""
        fake_tools.clusters.add("kubelaunch")
        fake_tools.namespaces.add("ingress-nginx")
        fake_tools.pods["app=sample"] = [make_pod("sample-1", ready=False, phase="Pending")]

        with patch("subprocess.Popen") as mock_popen:
            with pytest.raises(ReadinessTimeoutError) as exc_info:
                _pipeline(config, fake_clock).run()

            mock_popen.assert_not_called()

        assert exc_info.value.exit_code != 0
        assert fake_clock.now == 60.0
