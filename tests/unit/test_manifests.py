"""Unit tests for manifest generation and application."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

from kubelaunch.bootstrap import AppConfig, Kubectl, ManifestApplier, ManifestGenerator
from kubelaunch.errors import ManifestApplyError


class TestAppConfig:
    """Tests for AppConfig."""

    def test_default_values(self):
        config = AppConfig()
        assert config.name == "sample"
        assert config.selector == "app=sample"
        assert config.service_port == 80


class TestManifestGenerator:
    """Tests for ManifestGenerator."""

    def test_generate_manifests(self, tmp_path):
        written = ManifestGenerator().generate(AppConfig(), tmp_path / "k8s")

        assert [p.name for p in written] == ["deployment.yaml", "ingress.yaml", "service.yaml"]
        assert all(p.exists() for p in written)

    def test_namespace_manifest_sorted_first(self, tmp_path):
        written = ManifestGenerator().generate(AppConfig(namespace="demo"), tmp_path)

        assert written[0].name == "00-namespace.yaml"
        assert sorted(p.name for p in written)[0] == "00-namespace.yaml"
        content = yaml.safe_load(written[0].read_text())
        assert content["kind"] == "Namespace"
        assert content["metadata"]["name"] == "demo"

    def test_deployment_labels_match_selector(self, tmp_path):
        ManifestGenerator().generate(AppConfig(name="web", image="web:1.0"), tmp_path)

        deployment = yaml.safe_load((tmp_path / "deployment.yaml").read_text())
        template = deployment["spec"]["template"]
        container = template["spec"]["containers"][0]

        assert deployment["spec"]["selector"]["matchLabels"] == {"app": "web"}
        assert template["metadata"]["labels"] == {"app": "web"}
        assert container["image"] == "web:1.0"
        assert container["readinessProbe"]["httpGet"]["path"] == "/"

    def test_service_ports(self, tmp_path):
        ManifestGenerator().generate(AppConfig(container_port=8080, service_port=80), tmp_path)

        service = yaml.safe_load((tmp_path / "service.yaml").read_text())
        port = service["spec"]["ports"][0]

        assert port["port"] == 80
        assert port["targetPort"] == 8080

    def test_ingress_host(self, tmp_path):
        ManifestGenerator().generate(AppConfig(ingress_host="sample.local"), tmp_path)

        ingress = yaml.safe_load((tmp_path / "ingress.yaml").read_text())
        rule = ingress["spec"]["rules"][0]

        assert ingress["spec"]["ingressClassName"] == "nginx"
        assert rule["host"] == "sample.local"
        assert rule["http"]["paths"][0]["backend"]["service"]["name"] == "sample"

    def test_matches_repository_manifests(self, tmp_path):
        """The checked-in k8s/ directory is what the generator produces."""
        repo_dir = Path(__file__).resolve().parents[2] / "k8s"
        if not repo_dir.is_dir():
            pytest.skip("k8s/ not present")

        ManifestGenerator().generate(AppConfig(), tmp_path)

        for name in ("deployment.yaml", "service.yaml", "ingress.yaml"):
            generated = yaml.safe_load((tmp_path / name).read_text())
            checked_in = yaml.safe_load((repo_dir / name).read_text())
            assert generated == checked_in, name


class TestManifestApplier:
    """Tests for ManifestApplier."""

    def test_apply_all_in_order(self, fake_tools, manifest_dir):
        (manifest_dir / "README.md").write_text("not a manifest")

        applied = ManifestApplier(Kubectl()).apply(manifest_dir)

        assert [p.name for p in applied] == ["deployment.yaml", "service.yaml"]
        assert [Path(s).name for s in fake_tools.applied] == ["deployment.yaml", "service.yaml"]

    def test_reapply_is_unconditional(self, fake_tools, manifest_dir):
        applier = ManifestApplier(Kubectl())
        applier.apply(manifest_dir)
        applier.apply(manifest_dir)

        assert len(fake_tools.applied) == 4

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ManifestApplyError, match="not found"):
            ManifestApplier(Kubectl()).apply(tmp_path / "nope")

    def test_empty_directory(self, tmp_path):
        with pytest.raises(ManifestApplyError, match="No manifests"):
            ManifestApplier(Kubectl()).apply(tmp_path)

    def test_apply_failure_stops(self, manifest_dir):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(
                returncode=1,
                stdout="",
                stderr="error validating data",
            )
            with pytest.raises(ManifestApplyError) as exc_info:
                ManifestApplier(Kubectl()).apply(manifest_dir)

            assert "deployment.yaml" in exc_info.value.message
            assert mock_run.call_count == 1

    def test_delete_reverse_order(self, fake_tools, manifest_dir):
        deleted = ManifestApplier(Kubectl()).delete(manifest_dir)

        assert [p.name for p in deleted] == ["service.yaml", "deployment.yaml"]
        assert fake_tools.ran("kubectl", "delete", "-f")
