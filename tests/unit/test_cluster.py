"""Unit tests for the cluster existence check."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import yaml

from kubelaunch.bootstrap import CloudCluster, KindCluster, build_kind_config
from kubelaunch.errors import ClusterError


class TestBuildKindConfig:
    """Tests for the generated kind config."""

    def test_ingress_ready_node(self):
        config = build_kind_config()
        node = config["nodes"][0]

        assert node["role"] == "control-plane"
        assert "ingress-ready=true" in node["kubeadmConfigPatches"][0]
        host_ports = [m["hostPort"] for m in node["extraPortMappings"]]
        assert host_ports == [80, 443]

    def test_custom_host_ports(self):
        node = build_kind_config(8081, 8443)["nodes"][0]
        assert [m["hostPort"] for m in node["extraPortMappings"]] == [8081, 8443]


class TestKindCluster:
    """Tests for KindCluster."""

    def test_exists(self, fake_tools):
        fake_tools.clusters.add("kubelaunch")
        assert KindCluster("kubelaunch").exists() is True
        assert KindCluster("other").exists() is False

    def test_no_clusters(self, fake_tools):
        assert KindCluster("kubelaunch").list_clusters() == []

    def test_ensure_creates_missing_cluster(self, fake_tools, tmp_path):
        cluster = KindCluster("kubelaunch", config_dir=tmp_path)

        assert cluster.ensure() is True
        assert "kubelaunch" in fake_tools.clusters

        create = next(c for c in fake_tools.calls if c[:3] == ["kind", "create", "cluster"])
        config_path = create[create.index("--config") + 1]
        written = yaml.safe_load(open(config_path).read())
        assert written["kind"] == "Cluster"

    def test_ensure_keeps_existing_cluster(self, fake_tools, tmp_path):
        fake_tools.clusters.add("kubelaunch")

        assert KindCluster("kubelaunch", config_dir=tmp_path).ensure() is False
        assert not fake_tools.ran("kind", "create")

    def test_create_failure(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(
                returncode=1,
                stdout="",
                stderr="failed to create cluster: docker not running",
            )
            with pytest.raises(ClusterError) as exc_info:
                KindCluster("kubelaunch", config_dir=tmp_path).create()

            assert "docker not running" in exc_info.value.message
            assert exc_info.value.exit_code == 1

    def test_delete(self, fake_tools):
        fake_tools.clusters.add("kubelaunch")

        assert KindCluster("kubelaunch").delete() is True
        assert fake_tools.clusters == set()
        assert KindCluster("kubelaunch").delete() is False

    def test_context(self):
        assert KindCluster("demo").context == "kind-demo"


class TestCloudCluster:
    """Tests for CloudCluster."""

    def test_ensure_reachable(self):
        kubectl = MagicMock()
        kubectl.cluster_reachable.return_value = (True, "control plane is running")

        assert CloudCluster(kubectl).ensure() is False

    def test_ensure_unreachable(self):
        kubectl = MagicMock()
        kubectl.kube.context = "gke-prod"
        kubectl.cluster_reachable.return_value = (False, "Unable to connect")

        with pytest.raises(ClusterError, match="gke-prod"):
            CloudCluster(kubectl).ensure()
