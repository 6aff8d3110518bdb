"""Logging configuration: JSON lines in production, plain text elsewhere."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

from app.config import get_settings

PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(module)s %(funcName)s %(message)s"

APP_LOGGER = "app"


class LoggingConfig:
    """Configures the root logger once per process."""

    _configured = False

    def __init__(self, level: Optional[str] = None, json: Optional[bool] = None) -> None:
        settings = get_settings()
        self.level = (level or settings.log_level).upper()
        self.json = settings.is_production if json is None else json
        self.configure()

    def configure(self) -> None:
        if LoggingConfig._configured:
            return

        handler = logging.StreamHandler(sys.stdout)
        if self.json:
            handler.setFormatter(
                JsonFormatter(
                    JSON_FORMAT,
                    rename_fields={"levelname": "level", "name": "logger"},
                )
            )
        else:
            handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%H:%M:%S"))

        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(getattr(logging, self.level, logging.INFO))

        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

        LoggingConfig._configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the application namespace."""
    if not name:
        return logging.getLogger(APP_LOGGER)
    return logging.getLogger(name)
