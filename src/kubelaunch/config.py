"""Bootstrap configuration management.

Handles persistent configuration stored in ~/.kubelaunch/config.yaml.
Supports environment variable overrides and CLI flag precedence.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .shared import paths

# Deployment targets
TARGET_KIND = "kind"
TARGET_CLOUD = "cloud"
TARGETS = (TARGET_KIND, TARGET_CLOUD)

ENV_PREFIX = "KUBELAUNCH_"

# Keys that are never persisted or read from the environment
_INTERNAL_KEYS = {"_sources"}


@dataclass
class BootstrapConfig:
    """Configuration for the bootstrap flow."""

    target: str = TARGET_KIND
    cluster_name: str = "kubelaunch"
    kubeconfig: str | None = None
    context: str | None = None
    namespace: str = "default"
    manifest_dir: str = str(paths.DEFAULT_MANIFEST_DIR)
    selector: str = "app=sample"
    service: str = "sample"
    local_port: int = 8080
    remote_port: int = 80
    address: str = "127.0.0.1"
    readiness_timeout: float = 60.0
    ingress_timeout: float = 90.0
    poll_interval: float = 2.0
    ingress_manifest_url: str | None = None

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    @property
    def kube_context(self) -> str | None:
        """Context every kubectl call runs against.

        A kind cluster always gets its own context so the flow never
        depends on whatever context happens to be current.
        """
        if self.context:
            return self.context
        if self.target == TARGET_KIND:
            return f"kind-{self.cluster_name}"
        return None

    def to_dict(self) -> dict[str, Any]:
        """Plain dict of public values."""
        return {key: getattr(self, key) for key in config_keys()}


def config_keys() -> list[str]:
    """Names of all settable config keys."""
    return [f.name for f in fields(BootstrapConfig) if f.name not in _INTERNAL_KEYS]


def get_config_path() -> Path:
    """Get the config file path.

    Returns:
        Path to ~/.kubelaunch/config.yaml
    """
    return paths.get_config_path()


def _coerce(key: str, value: Any) -> Any:
    """Convert a raw value to the type of the config field."""
    default = getattr(BootstrapConfig, key, None)
    if value is None:
        if default is not None:
            raise ConfigError(f"{key} must not be empty", key=key)
        return None
    try:
        if isinstance(default, bool):
            return str(value).lower() in ("1", "true", "yes")
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}", key=key) from e
    return str(value)


def _validate(config: BootstrapConfig) -> None:
    if config.target not in TARGETS:
        raise ConfigError(
            f"Unknown target {config.target!r}. Expected one of: {', '.join(TARGETS)}",
            key="target",
        )
    for key in ("local_port", "remote_port"):
        port = getattr(config, key)
        if not 0 < port < 65536:
            raise ConfigError(f"Invalid port for {key}: {port}", key=key)
    for key in ("readiness_timeout", "ingress_timeout", "poll_interval"):
        if getattr(config, key) <= 0:
            raise ConfigError(f"{key} must be positive", key=key)


def read_config_file(config_path: Path | None = None) -> dict[str, Any]:
    """Read the raw config file.

    Args:
        config_path: Explicit config path; defaults to ~/.kubelaunch/config.yaml

    Returns:
        Dict of values from the file (empty if the file does not exist).
    """
    path = config_path or get_config_path()
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> BootstrapConfig:
    """Load bootstrap configuration.

    Precedence (highest to lowest):
    1. CLI flags (overrides; None values are ignored)
    2. Environment variables (KUBELAUNCH_<KEY>)
    3. Config file (~/.kubelaunch/config.yaml)
    4. Defaults

    Returns:
        BootstrapConfig with values and sources
    """
    config = BootstrapConfig()
    keys = config_keys()
    sources: dict[str, str] = {key: "default" for key in keys}

    file_config = read_config_file(config_path)
    for key, value in file_config.items():
        if key not in keys:
            raise ConfigError(f"Unknown config key in file: {key}", key=key)
        setattr(config, key, _coerce(key, value))
        sources[key] = "config file"

    for key in keys:
        env_value = os.environ.get(ENV_PREFIX + key.upper())
        if env_value:
            setattr(config, key, _coerce(key, env_value))
            sources[key] = "environment"

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key not in keys:
            raise ConfigError(f"Unknown config key: {key}", key=key)
        setattr(config, key, _coerce(key, value))
        sources[key] = "flag"

    _validate(config)
    config._sources = sources
    return config


def save_config(key: str, value: Any, config_path: Path | None = None) -> None:
    """Save a config value to the config file.

    Args:
        key: Config key
        value: Value to save
        config_path: Explicit config path
    """
    if key not in config_keys():
        raise ConfigError(f"Unknown config key: {key}", key=key)

    path = config_path or get_config_path()
    existing = read_config_file(path)
    existing[key] = _coerce(key, value)

    # Validate the merged result before writing
    keys = config_keys()
    candidate = BootstrapConfig(**{k: _coerce(k, v) for k, v in existing.items() if k in keys})
    _validate(candidate)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(existing, f, default_flow_style=False)


def unset_config(key: str, config_path: Path | None = None) -> bool:
    """Remove a config value from the config file.

    Args:
        key: Config key to remove
        config_path: Explicit config path

    Returns:
        True if key was removed, False if not found
    """
    path = config_path or get_config_path()
    existing = read_config_file(path)
    if key not in existing:
        return False

    del existing[key]

    with open(path, "w") as f:
        yaml.dump(existing, f, default_flow_style=False)

    return True
