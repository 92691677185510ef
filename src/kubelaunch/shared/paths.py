"""Local paths used by kubelaunch.

Everything kubelaunch writes outside the project lives under ~/.kubelaunch/.
get_config_path() reads KUBELAUNCH_DIR at call time.
"""

from pathlib import Path

KUBELAUNCH_DIR = Path.home() / ".kubelaunch"

# Generated kind cluster configs, one <cluster>.yaml per cluster
KIND_DIR = KUBELAUNCH_DIR / "kind"

# Relative to the working directory
DEFAULT_MANIFEST_DIR = Path("k8s")


def get_config_path() -> Path:
    """Path to ~/.kubelaunch/config.yaml."""
    return KUBELAUNCH_DIR / "config.yaml"
