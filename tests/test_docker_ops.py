import threading

import pytest
from docker.errors import APIError, NotFound

from sdo.docker_ops import ContainerWatcher


class FakeEvents:
    """Event stream that yields queued events, then blocks until closed."""

    def __init__(self, events):
        self._events = list(events)
        self._closed = threading.Event()

    def __iter__(self):
        for e in self._events:
            yield e
        self._closed.wait(5)

    def close(self):
        self._closed.set()


class FakeAPI:
    def __init__(self, containers):
        self.containers_by_id = {c["Id"]: c for c in containers}
        self.listed = set(self.containers_by_id)
        self.fail_listing = None

    def containers(self, all=False):
        if self.fail_listing:
            raise self.fail_listing
        return [{"Id": cid} for cid in self.containers_by_id if cid in self.listed]

    def inspect_container(self, cid):
        try:
            return self.containers_by_id[cid]
        except KeyError:
            raise NotFound(f"No such container: {cid}") from None


class FakeClient:
    def __init__(self, containers, events=()):
        self.api = FakeAPI(containers)
        self.stream = FakeEvents(events)
        self.events_kwargs = None

    def events(self, **kwargs):
        self.events_kwargs = kwargs
        return self.stream


class Transitions:
    def __init__(self):
        self.calls = []

    def __call__(self, old, new):
        self.calls.append((old.id if old else None, new.id if new else None))


def test_start_reports_existing_containers(attrs_factory):
    client = FakeClient([attrs_factory(cid="a" * 64), attrs_factory(cid="b" * 64)])
    handler = Transitions()
    w = ContainerWatcher(client, handler)
    w.start()
    try:
        assert handler.calls == [(None, "a" * 64), (None, "b" * 64)]
    finally:
        w.stop()
    assert not w.running


def test_start_propagates_listing_errors(attrs_factory):
    client = FakeClient([])
    client.api.fail_listing = APIError("daemon unavailable")
    w = ContainerWatcher(client, Transitions())
    with pytest.raises(APIError):
        w.start()


def test_events_drive_transitions(attrs_factory):
    cid = "c" * 64
    client = FakeClient([attrs_factory(cid=cid)])
    handler = Transitions()
    w = ContainerWatcher(client, handler)
    w._sync()

    client.api.containers_by_id[cid] = attrs_factory(cid=cid, paused=True)
    w._handle_event({"Type": "container", "Action": "pause", "id": cid})
    w._handle_event({"Type": "container", "Action": "exec_start: sh", "id": cid})
    w._handle_event({"Type": "container", "Action": "health_status: healthy", "Actor": {"ID": cid}})
    w._handle_event({"Type": "network", "Action": "connect", "id": cid})
    w._handle_event({"Type": "container", "Action": "destroy", "id": cid})

    assert handler.calls == [(None, cid), (cid, cid), (cid, cid), (cid, None)]


def test_vanished_container_is_reported_removed(attrs_factory):
    cid = "d" * 64
    client = FakeClient([attrs_factory(cid=cid)])
    handler = Transitions()
    w = ContainerWatcher(client, handler)
    w._sync()
    del client.api.containers_by_id[cid]
    w._handle_event({"Type": "container", "Action": "die", "id": cid})
    assert handler.calls == [(None, cid), (cid, None)]


def test_resync_reports_containers_gone_while_disconnected(attrs_factory):
    keep, gone = "e" * 64, "f" * 64
    client = FakeClient([attrs_factory(cid=keep), attrs_factory(cid=gone)])
    handler = Transitions()
    w = ContainerWatcher(client, handler)
    w._sync()
    del client.api.containers_by_id[gone]
    w._sync()
    assert (gone, None) in handler.calls
    assert (keep, keep) in handler.calls


def test_event_thread_handles_events_then_stops(attrs_factory):
    cid = "1" * 64
    client = FakeClient([attrs_factory(cid=cid)], events=[{"Type": "container", "Action": "start", "id": cid}])
    # created after the initial listing, so only the event stream reports it
    client.api.listed.clear()

    seen = threading.Event()
    calls = []

    def handler(old, new):
        calls.append((old, new))
        seen.set()

    w = ContainerWatcher(client, handler)
    w.start()
    assert seen.wait(2)
    assert calls[0][0] is None and calls[0][1].id == cid
    assert client.events_kwargs["filters"] == {"type": "container"}
    assert client.events_kwargs["decode"] is True

    w.stop()
    w.stop()
    assert not w.running


def test_no_transitions_after_stop(attrs_factory):
    cid = "2" * 64
    client = FakeClient([attrs_factory(cid=cid)])
    handler = Transitions()
    w = ContainerWatcher(client, handler)
    w.start()
    w.stop()
    w._handle_event({"Type": "container", "Action": "destroy", "id": cid})
    assert handler.calls == [(None, cid)]
