from __future__ import annotations

import logging

from .settings import settings


LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"


def configure_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure root logging once for the process.

    Falls back to SDO_LOG_LEVEL / SDO_LOG_FILE when arguments are omitted.
    """
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        filename=log_file or settings.log_file or None,
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )


class ObserverLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the observer type."""

    def process(self, msg, kwargs):
        return f"[observerType={self.extra['observerType']}] {msg}", kwargs


def observer_logger(name: str, observer_type: str) -> ObserverLogAdapter:
    return ObserverLogAdapter(logging.getLogger(name), {"observerType": observer_type})
