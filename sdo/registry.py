from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel

from .endpoints import ServiceCallbacks


ObserverFactory = Callable[[ServiceCallbacks], Any]


class UnknownObserverType(KeyError):
    pass


@dataclass(frozen=True)
class ObserverEntry:
    factory: ObserverFactory
    config_model: type[BaseModel]


class ObserverRegistry:
    """Observer type name -> (factory, config model).

    Populated explicitly at startup; see `build_registry`.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ObserverEntry] = {}

    def register(self, observer_type: str, factory: ObserverFactory, config_model: type[BaseModel]) -> None:
        if observer_type in self._entries:
            raise ValueError(f"Observer type '{observer_type}' is already registered.")
        self._entries[observer_type] = ObserverEntry(factory=factory, config_model=config_model)

    def _entry(self, observer_type: str) -> ObserverEntry:
        try:
            return self._entries[observer_type]
        except KeyError:
            raise UnknownObserverType(observer_type) from None

    def create(self, observer_type: str, callbacks: ServiceCallbacks) -> Any:
        return self._entry(observer_type).factory(callbacks)

    def config_model(self, observer_type: str) -> type[BaseModel]:
        return self._entry(observer_type).config_model

    def build_config(self, observer_type: str, data: dict[str, Any]) -> BaseModel:
        """Validate raw config for an observer type (raises pydantic.ValidationError)."""
        return self.config_model(observer_type).model_validate(data)

    def types(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, observer_type: object) -> bool:
        return observer_type in self._entries


def build_registry() -> ObserverRegistry:
    from .api_models import DockerObserverConfig
    from .observer import OBSERVER_TYPE, DockerObserver

    registry = ObserverRegistry()
    registry.register(OBSERVER_TYPE, DockerObserver, DockerObserverConfig)
    return registry
