"""Structured logging configuration using structlog.

Output always goes to stderr: in MCP mode stdout carries the protocol
stream and must not receive log lines.
"""

from __future__ import annotations

import logging
import sys
from typing import cast

import structlog
from structlog.typing import FilteringBoundLogger, Processor


def setup_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog with a JSON or human-readable console renderer.

    The console renderer prints tracebacks itself; the JSON renderer gets
    them pre-formatted into the ``exception`` key.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> FilteringBoundLogger:
    """Get a logger bound with a component name."""
    return cast(FilteringBoundLogger, structlog.get_logger(component=component))
