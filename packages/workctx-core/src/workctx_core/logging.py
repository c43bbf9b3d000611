from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from workctx_core.config import LoggingConfig

# aiosqlite logs every statement it proxies at DEBUG.
_NOISY_LOGGERS = ("aiosqlite",)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": record.created,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure and return the root workctx logger.

    Idempotent: a logger that already has handlers is returned untouched.
    """
    logger = logging.getLogger("workctx")

    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        ))

    logger.addHandler(handler)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logger


def setup_logging_from(config: LoggingConfig) -> logging.Logger:
    """Configure logging from the ``[logging]`` config section."""
    return setup_logging(config.level, json_output=config.json)


def get_logger(name: str) -> logging.Logger:
    """Get a child logger under the workctx namespace."""
    return logging.getLogger(f"workctx.{name}")
