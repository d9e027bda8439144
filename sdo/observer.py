"""Docker observer.

Watches a docker engine and reports container ports as service endpoints.

Monitors can be configured from container labels:

  - ``agent.signalfx.com.monitorType.<port>``: monitor type for the port.
    Discovery rules are not consulted for such endpoints.
  - ``agent.signalfx.com.config.<port>.<key>``: config override. The label
    value is a string but is read as YAML, so ``"1"`` becomes the integer 1.

Use ``<port>-<name>`` instead of ``<port>`` to run several monitors against
one port, e.g. ``monitorType.8080-app`` and ``monitorType.8080-goruntime``.
The name becomes the endpoint's ``name``.
"""
from __future__ import annotations

from dataclasses import replace
from threading import Lock
from typing import Any, Callable

import requests
from docker.errors import DockerException

from .api_models import DockerObserverConfig
from .containers import ContainerSummary
from .docker_ops import ChangeHandler, ContainerWatcher, make_client
from .endpoints import (
    Container,
    Orchestration,
    OrchestratorType,
    PortPreference,
    ServiceCallbacks,
    ServiceEndpoint,
)
from .labels import PortIdentity, PortSet, parse_config_labels
from .logs import observer_logger


OBSERVER_TYPE = "docker"

logger = observer_logger(__name__, OBSERVER_TYPE)


class ObserverConfigError(Exception):
    """The observer could not be started with the given configuration."""


def _endpoint_key(e: ServiceEndpoint) -> tuple[str, str, str]:
    # The id alone repeats across protocols (53/tcp and 53/udp).
    return (e.id, e.port_type, e.name)


def _same_endpoints(a: list[ServiceEndpoint], b: list[ServiceEndpoint]) -> bool:
    """Order-insensitive comparison of every endpoint field."""
    return len(a) == len(b) and sorted(a, key=_endpoint_key) == sorted(b, key=_endpoint_key)


class DockerObserver:
    """Turns container transitions into endpoint Added/Removed callbacks."""

    def __init__(
        self,
        callbacks: ServiceCallbacks,
        client_factory: Callable[[str], Any] = make_client,
        watcher_factory: Callable[[Any, ChangeHandler], Any] = ContainerWatcher,
    ):
        self.callbacks = callbacks
        self.config: DockerObserverConfig | None = None
        self._client_factory = client_factory
        self._watcher_factory = watcher_factory
        self._client: Any = None
        self._watcher: Any = None
        self._lock = Lock()
        self._endpoints_by_container: dict[str, list[ServiceEndpoint]] = {}

    def configure(self, config: DockerObserverConfig) -> None:
        self.shutdown()
        try:
            client = self._client_factory(config.docker_url)
        except (DockerException, requests.RequestException) as e:
            raise ObserverConfigError(f"Could not create docker client: {e}") from e

        self.config = config
        watcher = self._watcher_factory(client, self.change_handler)
        try:
            watcher.start()
        except (DockerException, requests.RequestException) as e:
            logger.error("Could not list docker containers: %s", e)
            watcher.stop()
            if hasattr(client, "close"):
                client.close()
            raise ObserverConfigError(f"Could not list docker containers: {e}") from e

        self._client = client
        self._watcher = watcher
        logger.info("Watching docker at %s", config.docker_url)

    def shutdown(self) -> None:
        watcher, self._watcher = self._watcher, None
        client, self._client = self._client, None
        if watcher is not None:
            watcher.stop()
            logger.info("Stopped watching docker")
        if client is not None and hasattr(client, "close"):
            client.close()

    def known_endpoints(self) -> list[ServiceEndpoint]:
        with self._lock:
            return [e for eps in self._endpoints_by_container.values() for e in eps]

    def change_handler(self, old: ContainerSummary | None, new: ContainerSummary | None) -> None:
        """Recompute a container's endpoints and report the difference.

        An update that changes anything is reported as removal of all old
        endpoints followed by addition of all new ones. Never raises.
        """
        try:
            self._handle_change(old, new)
        except Exception:
            logger.exception("Failed to process container change")

    def _handle_change(self, old: ContainerSummary | None, new: ContainerSummary | None) -> None:
        old_endpoints: list[ServiceEndpoint] = []
        new_endpoints: list[ServiceEndpoint] = []

        with self._lock:
            if old is not None:
                old_endpoints = self._endpoints_by_container.pop(old.id, [])

            if new is not None:
                new_endpoints = self.endpoints_for_container(new)
                self._endpoints_by_container[new.id] = new_endpoints

        # Redundant notifications for unrelated attributes produce no churn.
        if _same_endpoints(old_endpoints, new_endpoints):
            return

        # Callbacks run outside the lock so consumers may call back into the observer.
        for e in old_endpoints:
            logger.debug("Removing docker endpoint %s from container %s", e.id, old.id)
            self.callbacks.removed(e)

        for e in new_endpoints:
            logger.debug("Adding docker endpoint %s for container %s", e.id, new.id)
            self.callbacks.added(e)

    def endpoints_for_container(self, cont: ContainerSummary) -> list[ServiceEndpoint]:
        if not cont.active:
            return []

        container = cont.to_container()
        label_configs = parse_config_labels(cont.labels, self._config.label_prefix)

        known_ports = PortSet(sorted(label_configs))
        for key in cont.exposed_ports:
            try:
                known_ports.add(PortIdentity.from_port_key(key))
            except ValueError as e:
                logger.warning("Skipping exposed port of container %s: %s", cont.id, e)

        endpoints: list[ServiceEndpoint] = []
        for port in known_ports:
            try:
                endpoint = self.endpoint_for_port(port, cont, container)
            except Exception as e:
                logger.warning(
                    "Could not build endpoint for port %s of container %s: %s", port.port_key, cont.id, e
                )
                continue

            if endpoint is None:
                logger.debug("Skipping port %s of container %s", port.port_key, cont.id)
                continue

            label_conf = label_configs.get(port)
            if label_conf is not None:
                endpoint = replace(
                    endpoint,
                    monitor_type=label_conf.monitor_type,
                    configuration=dict(label_conf.configuration),
                )
            endpoints.append(endpoint)
        return endpoints

    def endpoint_for_port(
        self, port: PortIdentity, cont: ContainerSummary, container: Container
    ) -> ServiceEndpoint | None:
        """Build the endpoint for one port, or None if the port is filtered out."""
        config = self._config
        mapped_port, mapped_ip = cont.host_mapped_port(port.port_key)

        if config.ignore_non_host_bindings and mapped_port == 0 and not mapped_ip:
            return None

        endpoint_id = f"{container.primary_name}-{cont.id[:12]}-{port.number}"
        if port.name:
            endpoint_id += f"-{port.name}"

        dims = {}
        for label, dim_name in config.labels_to_dimensions.items():
            value = cont.labels.get(label)
            if value:
                dims[dim_name] = value

        if config.use_hostname_if_present and cont.hostname:
            host = cont.hostname
        else:
            host = cont.first_network_ip()

        if config.use_host_bindings and mapped_port and mapped_ip:
            port_pref = PortPreference.PUBLIC
            primary_port, alt_port = mapped_port, port.number
            host = "127.0.0.1" if mapped_ip == "0.0.0.0" else mapped_ip
        else:
            port_pref = PortPreference.PRIVATE
            primary_port, alt_port = port.number, mapped_port

        return ServiceEndpoint(
            id=endpoint_id,
            name=port.name,
            observer_type=OBSERVER_TYPE,
            container=container,
            orchestration=Orchestration(id="docker", type=OrchestratorType.DOCKER, port_pref=port_pref),
            host=host,
            port=primary_port,
            alt_port=alt_port,
            port_type=port.protocol.upper(),
            extra_dimensions=dims,
        )

    @property
    def _config(self) -> DockerObserverConfig:
        # Defaults apply until configure() is called.
        if self.config is None:
            self.config = DockerObserverConfig()
        return self.config
