"""
structlog setup for backend_argus.

Each record carries timestamp (UTC ISO 8601), level, logger and event_type, plus
whatever keyword context the call site passes:
    logger.warning("model_loader_invalid", path=str(path), error=str(e))

LOG_LEVEL picks the threshold; LOG_FORMAT=json (default) renders one JSON object
per line on stderr, anything else uses the console renderer. This module must not
import other backend_argus modules.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def build_processors(log_format: str = LOG_FORMAT) -> list[Any]:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.EventRenamer("event_type"),
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), event_key="event_type"))
    return processors


def configure_structlog() -> None:
    structlog.configure(
        processors=build_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, LOG_LEVEL, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """Module logger; `name` is bound as the logger field."""
    return structlog.get_logger(name).bind(logger=name)


def bind_token(mint: str) -> structlog.BoundLogger:
    return get_logger("backend_argus").bind(mint=mint)
