from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock

from .endpoints import ServiceCallbacks, ServiceEndpoint


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class ObserverStatus:
    type: str
    state: str  # running|disabled|stopped
    message: str
    updated_at: str


class RuntimeState:
    """In-memory view of what the observers currently report."""

    def __init__(self) -> None:
        self.lock = Lock()
        self.endpoints_by_id: dict[str, ServiceEndpoint] = {}
        self.observers: dict[str, ObserverStatus] = {}
        self.added_count = 0
        self.removed_count = 0

    def callbacks(self) -> ServiceCallbacks:
        return ServiceCallbacks(added=self.add_endpoint, removed=self.remove_endpoint)

    def add_endpoint(self, endpoint: ServiceEndpoint) -> None:
        with self.lock:
            self.endpoints_by_id[endpoint.id] = endpoint
            self.added_count += 1

    def remove_endpoint(self, endpoint: ServiceEndpoint) -> None:
        with self.lock:
            self.endpoints_by_id.pop(endpoint.id, None)
            self.removed_count += 1

    def endpoints(self) -> list[ServiceEndpoint]:
        with self.lock:
            return sorted(self.endpoints_by_id.values(), key=lambda e: e.id)

    def endpoint(self, endpoint_id: str) -> ServiceEndpoint | None:
        with self.lock:
            return self.endpoints_by_id.get(endpoint_id)

    def set_observer_status(self, observer_type: str, state: str, message: str) -> None:
        with self.lock:
            self.observers[observer_type] = ObserverStatus(
                type=observer_type, state=state, message=message, updated_at=utc_now()
            )

    def observer_statuses(self) -> list[ObserverStatus]:
        with self.lock:
            return [self.observers[k] for k in sorted(self.observers)]
