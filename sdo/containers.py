from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .endpoints import Container


@dataclass(frozen=True)
class ContainerSummary:
    """Normalized view of a `docker inspect` result."""

    id: str
    names: tuple[str, ...]
    image: str
    command: str
    state: str
    running: bool = False
    paused: bool = False
    hostname: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    exposed_ports: tuple[str, ...] = ()
    networks: dict[str, str] = field(default_factory=dict)  # network name -> ip
    ports: dict[str, tuple[tuple[str, str], ...]] = field(default_factory=dict)  # "80/tcp" -> ((host_ip, host_port), ...)

    @classmethod
    def from_attrs(cls, attrs: dict[str, Any]) -> ContainerSummary:
        cfg = attrs.get("Config") or {}
        state = attrs.get("State") or {}
        net = attrs.get("NetworkSettings") or {}

        cmd = cfg.get("Cmd") or []
        if isinstance(cmd, str):
            cmd = [cmd]

        networks = {name: (n or {}).get("IPAddress") or "" for name, n in (net.get("Networks") or {}).items()}

        ports: dict[str, tuple[tuple[str, str], ...]] = {}
        for key, bindings in (net.get("Ports") or {}).items():
            ports[key] = tuple((b.get("HostIp") or "", b.get("HostPort") or "") for b in (bindings or []))

        name = attrs.get("Name") or ""
        return cls(
            id=attrs.get("Id") or "",
            names=(name,) if name else (),
            image=cfg.get("Image") or "",
            command=" ".join(cmd),
            state=state.get("Status") or "",
            running=bool(state.get("Running")),
            paused=bool(state.get("Paused")),
            hostname=cfg.get("Hostname") or "",
            labels=dict(cfg.get("Labels") or {}),
            exposed_ports=tuple(sorted((cfg.get("ExposedPorts") or {}).keys())),
            networks=networks,
            ports=ports,
        )

    @property
    def active(self) -> bool:
        return self.running and not self.paused

    def to_container(self) -> Container:
        return Container(
            id=self.id,
            names=self.names,
            image=self.image,
            command=self.command,
            state=self.state,
            labels=dict(self.labels),
        )

    def first_network_ip(self) -> str:
        # Containers usually sit on a single network; with several, the
        # choice follows the daemon's enumeration order.
        for ip in self.networks.values():
            return ip
        return ""

    def host_mapped_port(self, port_key: str) -> tuple[int, str]:
        """Return (host_port, host_ip) for the first host binding of a port, or (0, "")."""
        for host_ip, host_port in self.ports.get(port_key, ()):
            try:
                return int(host_port), host_ip
            except ValueError:
                continue
        return 0, ""
