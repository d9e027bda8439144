from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ObserverConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    type: str = Field(..., description="Observer type name")


class DockerObserverConfig(ObserverConfig):
    type: str = "docker"
    docker_url: str = Field(
        "unix:///var/run/docker.sock", alias="dockerURL", min_length=1, description="Docker engine API URL"
    )
    # label name -> dimension name, e.g. {"io.kubernetes.container.name": "container_spec_name"}
    labels_to_dimensions: dict[str, str] = Field(default_factory=dict, alias="labelsToDimensions")
    use_hostname_if_present: bool = Field(
        False, alias="useHostnameIfPresent", description="Prefer Config.Hostname over the network IP as host"
    )
    use_host_bindings: bool = Field(
        False, alias="useHostBindings", description="Use the host-bound ip/port when a binding exists"
    )
    ignore_non_host_bindings: bool = Field(
        False, alias="ignoreNonHostBindings", description="Skip ports that are not bound to the host"
    )
    label_prefix: str = Field("agent.signalfx.com", alias="labelPrefix", min_length=1)


class EndpointOut(BaseModel):
    id: str
    name: str
    observer_type: str
    host: str
    port: int
    alt_port: int
    port_type: str
    orchestrator: str
    port_pref: str
    container_id: str
    container_name: str
    container_names: list[str]
    container_image: str
    container_command: str
    container_state: str
    container_labels: dict[str, str]
    dimensions: dict[str, str]
    monitor_type: str
    configuration: dict[str, Any]


class ObserverStatusOut(BaseModel):
    type: str
    state: str = Field(..., description="running|disabled|stopped")
    message: str
    updated_at: str
