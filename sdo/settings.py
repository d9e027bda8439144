from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from .api_models import DockerObserverConfig


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(x.strip() for x in raw.split(",") if x.strip())


def _env_map(name: str) -> dict[str, str]:
    """Parse ``label=dimension,label2=dimension2``."""
    out: dict[str, str] = {}
    for item in _env_list(name):
        k, sep, v = item.partition("=")
        if sep and k.strip() and v.strip():
            out[k.strip()] = v.strip()
    return out


@dataclass(frozen=True)
class Settings:
    # Observers to start, by type name
    observers: tuple[str, ...] = field(default_factory=lambda: _env_list("SDO_OBSERVERS", "docker"))

    # Docker observer
    docker_url: str = os.getenv("SDO_DOCKER_URL", "unix:///var/run/docker.sock")
    docker_timeout_s: int = _env_int("SDO_DOCKER_TIMEOUT_S", 10)
    use_hostname_if_present: bool = _env_bool("SDO_USE_HOSTNAME_IF_PRESENT", False)
    use_host_bindings: bool = _env_bool("SDO_USE_HOST_BINDINGS", False)
    ignore_non_host_bindings: bool = _env_bool("SDO_IGNORE_NON_HOST_BINDINGS", False)
    labels_to_dimensions: dict[str, str] = field(default_factory=lambda: _env_map("SDO_LABELS_TO_DIMENSIONS"))
    label_prefix: str = os.getenv("SDO_LABEL_PREFIX", "agent.signalfx.com")

    # Logging
    log_level: str = os.getenv("SDO_LOG_LEVEL", "INFO")
    log_file: str | None = os.getenv("SDO_LOG_FILE")

    # Diagnostic server
    diag_host: str = os.getenv("SDO_DIAG_HOST", "127.0.0.1")
    diag_port: int = _env_int("SDO_DIAG_PORT", 8095)

    def observer_config_data(self, observer_type: str) -> dict[str, Any]:
        """Raw config for an observer type, validated later by its config model."""
        if observer_type == "docker":
            return {
                "type": "docker",
                "docker_url": self.docker_url,
                "labels_to_dimensions": dict(self.labels_to_dimensions),
                "use_hostname_if_present": self.use_hostname_if_present,
                "use_host_bindings": self.use_host_bindings,
                "ignore_non_host_bindings": self.ignore_non_host_bindings,
                "label_prefix": self.label_prefix,
            }
        return {"type": observer_type}

    def docker_observer_config(self) -> DockerObserverConfig:
        return DockerObserverConfig.model_validate(self.observer_config_data("docker"))


settings = Settings()
