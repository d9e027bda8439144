import os as _os
import sys

import pytest


# Ensure project root is importable (so `import main` / `import cli` work reliably across environments)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


def make_attrs(
    cid="3f4e5d6c7b8a9f0e1d2c3b4a",
    name="/redis",
    image="redis:7",
    running=True,
    paused=False,
    status=None,
    labels=None,
    exposed=("6379/tcp",),
    networks=None,
    ports=None,
    hostname="3f4e5d6c7b8a",
    cmd=("redis-server",),
):
    """Build a dict shaped like the output of `docker inspect`."""
    if status is None:
        status = "paused" if paused else ("running" if running else "exited")
    if networks is None:
        networks = {"bridge": "172.17.0.2"}
    return {
        "Id": cid,
        "Name": name,
        "Config": {
            "Image": image,
            "Cmd": list(cmd),
            "Hostname": hostname,
            "Labels": dict(labels or {}),
            "ExposedPorts": {p: {} for p in exposed},
        },
        "State": {"Status": status, "Running": running, "Paused": paused},
        "NetworkSettings": {
            "Networks": {n: {"IPAddress": ip} for n, ip in networks.items()},
            "Ports": dict(ports or {}),
        },
    }


@pytest.fixture
def attrs_factory():
    return make_attrs


class RecordingCallbacks:
    """Collects (event, endpoint) pairs in emission order."""

    def __init__(self):
        self.events = []

    def added(self, endpoint):
        self.events.append(("added", endpoint))

    def removed(self, endpoint):
        self.events.append(("removed", endpoint))

    def of(self, kind):
        return [e for k, e in self.events if k == kind]


@pytest.fixture
def recorder():
    return RecordingCallbacks()
