from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Iterator, Mapping, Union

import yaml


logger = logging.getLogger(__name__)

DEFAULT_LABEL_PREFIX = "agent.signalfx.com"

# <port> or <port>-<name>
PORT_SPEC_RE = re.compile(r"^(\d+)(?:-(.+))?$")

# Structured value produced from a label string. Only these shapes ever reach
# an endpoint's configuration.
ConfigValue = Union[None, bool, int, float, str, list, dict]


class LabelParseError(ValueError):
    pass


@dataclass(frozen=True, order=True)
class PortIdentity:
    """A container port, optionally split into named logical endpoints.

    `6379` and `6379-cache` are different identities even though they share
    the physical port.
    """

    number: int
    protocol: str = "tcp"
    name: str = ""

    @classmethod
    def from_port_key(cls, key: str) -> PortIdentity:
        """Build an identity from a docker port key such as ``6379/tcp``."""
        num, _, proto = key.partition("/")
        try:
            number = int(num)
        except ValueError:
            raise LabelParseError(f"Invalid port key {key!r}") from None
        return cls(number=number, protocol=(proto or "tcp").lower())

    @property
    def port_key(self) -> str:
        return f"{self.number}/{self.protocol}"


@dataclass(frozen=True)
class LabelConfig:
    monitor_type: str = ""
    configuration: dict[str, ConfigValue] = field(default_factory=dict)


class PortSet:
    """Insertion-ordered set of port identities."""

    def __init__(self, ports: Iterable[PortIdentity] = ()) -> None:
        self._ports: dict[PortIdentity, None] = {}
        self.update(ports)

    def add(self, port: PortIdentity) -> None:
        self._ports.setdefault(port, None)

    def update(self, ports: Iterable[PortIdentity]) -> None:
        for p in ports:
            self.add(p)

    def __contains__(self, port: object) -> bool:
        return port in self._ports

    def __iter__(self) -> Iterator[PortIdentity]:
        return iter(self._ports)

    def __len__(self) -> int:
        return len(self._ports)

    def __repr__(self) -> str:
        return f"PortSet({list(self._ports)!r})"


def parse_port_spec(spec: str) -> PortIdentity:
    m = PORT_SPEC_RE.match(spec)
    if not m:
        raise LabelParseError(f"Invalid port spec {spec!r}, expected <port> or <port>-<name>")
    number = int(m.group(1))
    if number > 65535:
        raise LabelParseError(f"Port {number} out of range")
    return PortIdentity(number=number, name=m.group(2) or "")


def _normalize(value: Any) -> ConfigValue:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    # YAML timestamps
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    return str(value)


def deserialize_label_value(raw: str) -> ConfigValue:
    """Interpret a label string as YAML, e.g. ``"1"`` -> ``1``, ``"[a, b]"`` -> ``["a", "b"]``."""
    return _normalize(yaml.safe_load(raw))


def parse_config_labels(
    labels: Mapping[str, str] | None, prefix: str = DEFAULT_LABEL_PREFIX
) -> dict[PortIdentity, LabelConfig]:
    """Extract per-port monitor type and configuration from container labels.

    Recognized keys:
      - ``<prefix>.monitorType.<portSpec>``
      - ``<prefix>.config.<portSpec>.<configKey>``

    Keys are visited in sorted order. When two keys resolve to the same port
    identity and setting, the later one wins and a warning is logged. Keys that
    cannot be parsed are skipped.
    """
    monitor_types: dict[PortIdentity, str] = {}
    configs: dict[PortIdentity, dict[str, ConfigValue]] = {}

    mt_prefix = f"{prefix}.monitorType."
    cfg_prefix = f"{prefix}.config."

    for key in sorted(labels or {}):
        value = labels[key]
        try:
            if key.startswith(mt_prefix):
                port = parse_port_spec(key[len(mt_prefix):])
                prev = monitor_types.get(port)
                if prev is not None and prev != value:
                    logger.warning(
                        "Label %s overrides monitorType %r with %r for port %s", key, prev, value, port.port_key
                    )
                monitor_types[port] = value
            elif key.startswith(cfg_prefix):
                spec, sep, conf_key = key[len(cfg_prefix):].partition(".")
                if not sep or not conf_key:
                    raise LabelParseError("Missing config key after port spec")
                port = parse_port_spec(spec)
                conf_value = deserialize_label_value(value)
                conf = configs.setdefault(port, {})
                if conf_key in conf and conf[conf_key] != conf_value:
                    logger.warning("Label %s overrides config %r for port %s", key, conf_key, port.port_key)
                conf[conf_key] = conf_value
        except (LabelParseError, yaml.YAMLError) as e:
            logger.warning("Skipping container label %s: %s", key, e)

    ports = PortSet(monitor_types)
    ports.update(configs)
    return {
        p: LabelConfig(monitor_type=monitor_types.get(p, ""), configuration=configs.get(p, {}))
        for p in ports
    }
