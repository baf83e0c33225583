"""Logging configuration for the FinTrack API."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

from app.core.exceptions import FinTrackError

ROOT_LOGGER = "fintrack"

# Cloud Run stamps every line itself
FORMATS = {
    "development": "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
    "production": "%(levelname)s %(name)s: %(message)s",
}

NOISY_LOGGERS = ("google.auth", "google.api_core", "urllib3", "grpc")


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """Configure and return the ``fintrack`` logger.

    The level comes from ``level``, then ``LOG_LEVEL``, then INFO; the line
    format follows ``ENVIRONMENT``. Calling it again is a no-op.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    if logger.handlers:
        return logger

    level = level or os.environ.get("LOG_LEVEL", "INFO").upper()
    environment = os.environ.get("ENVIRONMENT", "development")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(FORMATS.get(environment, FORMATS["development"]), datefmt="%Y-%m-%d %H:%M:%S")
    )

    logger.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """Logs the start and the outcome of an operation with its key fields.

    Example:
        with LogContext(logger, "record expense", household=hid, amount="12.50 USD"):
            ...
        # Starting record expense (household=..., amount=12.50 USD)
        # Completed record expense (household=..., amount=12.50 USD)
    """

    def __init__(self, logger: logging.Logger, operation: str, **context: Any) -> None:
        self.logger = logger
        self.operation = operation
        self.context = context

    def _describe(self) -> str:
        if not self.context:
            return self.operation
        fields = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.operation} ({fields})"

    def __enter__(self) -> "LogContext":
        self.logger.info(f"Starting {self._describe()}")
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> bool:
        if exc_type is None:
            self.logger.info(f"Completed {self._describe()}")
        elif isinstance(exc_val, FinTrackError):
            self.logger.warning(f"Failed {self._describe()}: {exc_val.message}")
        else:
            self.logger.error(f"Failed {self._describe()}: {exc_val}", exc_info=(exc_type, exc_val, exc_tb))
        return False
