"""Shared modules for kubelaunch: local paths and logging setup."""

from .logging import configure_logging, level_for_verbosity
from .paths import DEFAULT_MANIFEST_DIR, KIND_DIR, KUBELAUNCH_DIR, get_config_path

__all__ = [
    # Paths
    "KUBELAUNCH_DIR",
    "KIND_DIR",
    "DEFAULT_MANIFEST_DIR",
    "get_config_path",
    # Logging
    "configure_logging",
    "level_for_verbosity",
]
