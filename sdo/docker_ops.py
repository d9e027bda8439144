from __future__ import annotations

import logging
import time
from threading import Event, Thread, current_thread
from typing import Any, Callable, Optional

import docker
from docker.errors import NotFound

from .containers import ContainerSummary
from .settings import settings


logger = logging.getLogger(__name__)

DOCKER_API_VERSION = "auto"
USER_AGENT = "sdo-agent"

# Container event actions that may change a container's endpoints. Anything
# else (exec_*, attach, top, ...) is ignored.
WATCHED_ACTIONS = {
    "create",
    "start",
    "restart",
    "die",
    "stop",
    "kill",
    "oom",
    "pause",
    "unpause",
    "rename",
    "update",
    "health_status",
}

ChangeHandler = Callable[[Optional[ContainerSummary], Optional[ContainerSummary]], None]


def make_client(url: str, timeout: int | None = None) -> docker.DockerClient:
    """Build a docker client for the given engine URL.

    With version="auto" the engine is contacted once to negotiate the API
    version, so an unreachable daemon fails here.
    """
    return docker.DockerClient(
        base_url=url,
        version=DOCKER_API_VERSION,
        timeout=timeout or settings.docker_timeout_s,
        user_agent=USER_AGENT,
    )


class ContainerWatcher:
    """Lists existing containers, then follows the docker event stream.

    Every container transition is reported to `handler(old, new)`: `old` is
    None for a newly seen container, `new` is None once it is gone. All
    invocations happen serially, on the caller's thread during `start()` and
    on the watcher thread afterwards.
    """

    def __init__(self, client: Any, handler: ChangeHandler, retry_interval_s: float = 5.0):
        self.client = client
        self.handler = handler
        self.retry_interval_s = retry_interval_s
        self._containers: dict[str, ContainerSummary] = {}
        self._stop = Event()
        self._events: Any = None
        self._thr: Thread | None = None

    def start(self) -> None:
        """Report all existing containers, then watch for changes in the background.

        Errors while listing propagate to the caller.
        """
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        since = self._sync()
        self._thr = Thread(target=self._loop, args=(since,), name="sdo-docker-watch", daemon=True)
        self._thr.start()

    def stop(self, timeout_s: float = 5.0) -> None:
        self._stop.set()
        events, self._events = self._events, None
        if events is not None:
            try:
                events.close()
            except Exception as e:
                logger.debug("Error closing docker event stream: %s", e)
        thr = self._thr
        if thr and thr.is_alive() and thr is not current_thread():
            thr.join(timeout_s)

    @property
    def running(self) -> bool:
        return bool(self._thr and self._thr.is_alive())

    def _sync(self) -> int:
        """Reconcile known containers with a full listing; returns the listing time."""
        since = int(time.time())
        seen: set[str] = set()
        for c in self.client.api.containers(all=True):
            cid = c.get("Id") or c.get("ID") or ""
            if not cid:
                continue
            seen.add(cid)
            self._refresh(cid)
        for cid in list(self._containers):
            if cid not in seen:
                self._remove(cid)
        return since

    def _loop(self, since: int) -> None:
        logger.info("Docker event watcher started")
        while not self._stop.is_set():
            try:
                events = self.client.events(decode=True, since=since, filters={"type": "container"})
                self._events = events
                if self._stop.is_set():
                    events.close()
                    break
                for event in events:
                    if self._stop.is_set():
                        break
                    try:
                        self._handle_event(event)
                    except Exception as e:
                        logger.error("Failed to handle docker event %r: %s: %s", event, type(e).__name__, e)
            except Exception as e:
                if self._stop.is_set():
                    break
                logger.error("Docker event stream failed: %s: %s", type(e).__name__, e)

            # The stream ended or broke; resync after a pause so nothing is missed.
            if self._stop.wait(self.retry_interval_s):
                break
            try:
                since = self._sync()
            except Exception as e:
                logger.error("Could not list docker containers: %s: %s", type(e).__name__, e)
        logger.info("Docker event watcher stopped")

    def _handle_event(self, event: dict[str, Any]) -> None:
        if (event.get("Type") or "container") != "container":
            return
        cid = event.get("id") or (event.get("Actor") or {}).get("ID") or ""
        action = (event.get("Action") or event.get("status") or "").split(":", 1)[0].strip()
        if not cid:
            return
        if action == "destroy":
            self._remove(cid)
        elif action in WATCHED_ACTIONS:
            self._refresh(cid)

    def _refresh(self, cid: str) -> None:
        try:
            attrs = self.client.api.inspect_container(cid)
        except NotFound:
            self._remove(cid)
            return
        new = ContainerSummary.from_attrs(attrs)
        old = self._containers.get(cid)
        self._containers[cid] = new
        self._emit(old, new)

    def _remove(self, cid: str) -> None:
        old = self._containers.pop(cid, None)
        if old is not None:
            self._emit(old, None)

    def _emit(self, old: ContainerSummary | None, new: ContainerSummary | None) -> None:
        if self._stop.is_set():
            return
        self.handler(old, new)
