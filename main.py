"""Diagnostic server for the service discovery observers.

Run with:
    python main.py
or
    uvicorn main:app --host 127.0.0.1 --port 8095
"""
from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from sdo.api_models import EndpointOut, ObserverStatusOut
from sdo.logs import configure_logging
from sdo.observer import ObserverConfigError
from sdo.registry import UnknownObserverType, build_registry
from sdo.runtime import RuntimeState
from sdo.settings import settings


logger = logging.getLogger("sdo.main")

app = FastAPI(title="Service Discovery Observer")

runtime = RuntimeState()
registry = build_registry()
observers: dict[str, Any] = {}


def start_observers(observer_types: tuple[str, ...]) -> None:
    """Configure each observer; a failing one is disabled and the rest still start."""
    for observer_type in observer_types:
        if observer_type in observers:
            continue
        try:
            config = registry.build_config(observer_type, settings.observer_config_data(observer_type))
            observer = registry.create(observer_type, runtime.callbacks())
            observer.configure(config)
        except (UnknownObserverType, ValidationError, ObserverConfigError) as e:
            logger.error("Observer %s disabled: %s", observer_type, e)
            runtime.set_observer_status(observer_type, "disabled", str(e))
            continue
        observers[observer_type] = observer
        runtime.set_observer_status(observer_type, "running", "Configured")
        logger.info("Observer %s started", observer_type)


def stop_observers() -> None:
    for observer_type in list(observers):
        observer = observers.pop(observer_type)
        observer.shutdown()
        runtime.set_observer_status(observer_type, "stopped", "Shut down")


def diagnostic_text() -> str:
    lines = [
        "Service Discovery Observer Status",
        "=================================",
        "",
        "Observers:",
    ]
    for st in runtime.observer_statuses():
        lines.append(f"  {st.type}: {st.state} ({st.message})")
    endpoints = runtime.endpoints()
    lines += ["", f"Discovered Endpoints ({len(endpoints)}):"]
    for e in endpoints:
        extra = f" monitorType={e.monitor_type}" if e.monitor_type else ""
        lines.append(f"  {e.id} {e.host}:{e.port}/{e.port_type} [{e.orchestration.port_pref.value}]{extra}")
    lines += ["", f"Endpoints added: {runtime.added_count}, removed: {runtime.removed_count}"]
    return "\n".join(lines) + "\n"


@app.on_event("startup")
def startup() -> None:
    configure_logging()
    start_observers(settings.observers)


@app.on_event("shutdown")
def shutdown() -> None:
    stop_observers()


@app.get("/", response_class=PlainTextResponse)
def get_status() -> str:
    return diagnostic_text()


@app.get("/health")
def health() -> dict[str, Any]:
    running = [st.type for st in runtime.observer_statuses() if st.state == "running"]
    return {"status": "healthy", "observers": running}


@app.get("/endpoints", response_model=list[EndpointOut])
def list_endpoints(observer_type: str | None = None, monitor_type: str | None = None) -> list[dict[str, Any]]:
    out = []
    for e in runtime.endpoints():
        if observer_type and e.observer_type != observer_type:
            continue
        if monitor_type and e.monitor_type != monitor_type:
            continue
        out.append(e.to_dict())
    return out


@app.get("/endpoints/{endpoint_id}", response_model=EndpointOut)
def get_endpoint(endpoint_id: str) -> dict[str, Any]:
    e = runtime.endpoint(endpoint_id)
    if e is None:
        raise HTTPException(status_code=404, detail=f"Unknown endpoint '{endpoint_id}'.")
    return e.to_dict()


@app.get("/observers", response_model=list[ObserverStatusOut])
def list_observers() -> list[dict[str, Any]]:
    return [asdict(st) for st in runtime.observer_statuses()]


def main() -> None:
    import uvicorn

    configure_logging()
    logger.info("Serving diagnostics at %s:%d", settings.diag_host, settings.diag_port)
    uvicorn.run(app, host=settings.diag_host, port=settings.diag_port)


if __name__ == "__main__":
    main()
