"""Shared test fixtures for kubelaunch tests."""

from __future__ import annotations

import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from kubelaunch.bootstrap import CONTROLLER_SELECTOR
from tests.mocks import FakeClock, FakeTools, make_pod


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the real ~/.kubelaunch and KUBELAUNCH_* variables."""
    for key in list(os.environ):
        if key.startswith("KUBELAUNCH_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr("kubelaunch.shared.paths.KUBELAUNCH_DIR", tmp_path / ".kubelaunch")
    monkeypatch.setattr("kubelaunch.bootstrap.cluster.KIND_DIR", tmp_path / ".kubelaunch" / "kind")


@pytest.fixture
def fake_clock():
    """Clock that only advances when slept on."""
    return FakeClock()


@pytest.fixture
def fake_tools():
    """Fake kind/kubectl with ready controller and app pods, patched into subprocess.run."""
    tools = FakeTools(
        pods={
            "app=sample": [make_pod("sample-7d9f-abcde")],
            CONTROLLER_SELECTOR: [make_pod("ingress-nginx-controller-5c8d-xyz")],
        }
    )
    with patch("subprocess.run", side_effect=tools):
        yield tools


@pytest.fixture
def forward_process():
    """A port-forward process that stays up until terminated, patched into subprocess.Popen."""
    process = MagicMock()
    process.poll.return_value = None
    process.wait.side_effect = [subprocess.TimeoutExpired("kubectl", 1.0), 0, 0]
    with patch("subprocess.Popen", return_value=process):
        yield process


@pytest.fixture
def manifest_dir(tmp_path):
    """Directory holding two manifests."""
    directory = tmp_path / "k8s"
    directory.mkdir()
    (directory / "deployment.yaml").write_text("apiVersion: apps/v1\nkind: Deployment\n")
    (directory / "service.yaml").write_text("apiVersion: v1\nkind: Service\n")
    return directory
