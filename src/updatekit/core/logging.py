"""structlog setup: every event goes to a rotating JSON-lines file.

Terminal output belongs to the CLI renderers, so nothing is logged to the
console. The level comes from the caller or the UPDATEKIT_LOG_LEVEL
environment variable.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.types import FilteringBoundLogger

from updatekit.core.paths import get_state_dir

LEVEL_ENV = "UPDATEKIT_LOG_LEVEL"
MAX_LOG_BYTES = 2_000_000
LOG_BACKUPS = 2

_CONFIGURED = False


def drop_none(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Remove keys whose value is None, e.g. an absent custom path."""
    return {k: v for k, v in event_dict.items() if v is not None}


def default_log_file() -> Path:
    return get_state_dir() / "logs" / "updatekit.log"


def configure_logging(level: str | None = None, log_file: Path | None = None) -> None:
    """Route structlog events to the updatekit log file.

    Only the first call has an effect.

    Args:
        level: Level name such as "DEBUG". Defaults to $UPDATEKIT_LOG_LEVEL, then INFO.
        log_file: Destination file. Defaults to <state dir>/logs/updatekit.log.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    name = (level or os.environ.get(LEVEL_ENV) or "INFO").upper()
    numeric_level = logging.getLevelName(name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    log_file = log_file or default_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
    handler.setLevel(numeric_level)
    logging.root.addHandler(handler)
    logging.root.setLevel(numeric_level)

    structlog.configure(
        processors=[
            drop_none,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _CONFIGURED = True


def get_logger(name: str = "updatekit") -> FilteringBoundLogger:
    """Return a bound logger, configuring logging on first use.

    Events are snake_case names with keyword context, for example
    log.info("dnf_updates_complete", count=3, duration_ms=120).
    """
    if not _CONFIGURED:
        configure_logging()
    return structlog.get_logger(name)
