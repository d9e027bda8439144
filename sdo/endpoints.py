from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .labels import ConfigValue


class PortPreference(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class OrchestratorType(str, Enum):
    DOCKER = "docker"


@dataclass(frozen=True)
class Orchestration:
    id: str
    type: OrchestratorType
    port_pref: PortPreference = PortPreference.PRIVATE


@dataclass(frozen=True)
class Container:
    """Container attributes carried by every endpoint discovered on it.

    Labels are informational only: a label change that does not alter any
    endpoint field does not make two endpoints different.
    """

    id: str
    names: tuple[str, ...]
    image: str
    command: str
    state: str
    labels: dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def primary_name(self) -> str:
        if not self.names:
            return ""
        return self.names[0].lstrip("/")


@dataclass(frozen=True)
class ServiceEndpoint:
    id: str
    name: str
    observer_type: str
    container: Container
    orchestration: Orchestration
    host: str = ""
    port: int = 0
    alt_port: int = 0
    port_type: str = ""
    extra_dimensions: dict[str, str] = field(default_factory=dict)
    monitor_type: str = ""
    configuration: dict[str, ConfigValue] = field(default_factory=dict)

    def dimensions(self) -> dict[str, str]:
        dims = {
            "container_id": self.container.id,
            "container_name": self.container.primary_name,
            "container_image": self.container.image,
        }
        dims.update(self.extra_dimensions)
        return dims

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "observer_type": self.observer_type,
            "host": self.host,
            "port": self.port,
            "alt_port": self.alt_port,
            "port_type": self.port_type,
            "orchestrator": self.orchestration.type.value,
            "port_pref": self.orchestration.port_pref.value,
            "container_id": self.container.id,
            "container_name": self.container.primary_name,
            "container_names": list(self.container.names),
            "container_image": self.container.image,
            "container_command": self.container.command,
            "container_state": self.container.state,
            "container_labels": dict(self.container.labels),
            "dimensions": self.dimensions(),
            "monitor_type": self.monitor_type,
            "configuration": dict(self.configuration),
        }


@dataclass(frozen=True)
class ServiceCallbacks:
    """Where an observer reports endpoint lifecycle.

    Both callables are invoked synchronously from the observer's change
    handler and should return quickly.
    """

    added: Callable[[ServiceEndpoint], None]
    removed: Callable[[ServiceEndpoint], None]
