"""Structured logging configuration using structlog.

Records are JSON lines on stderr; stdout is reserved for the report so that
``clusterctx context -o json`` can be piped straight into another tool.
Every record emitted during one run carries the values passed to
``bind_run_context``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO, cast

import structlog
from structlog.typing import FilteringBoundLogger


def setup_logging(level: str = "warning", stream: TextIO | None = None) -> None:
    """Configure structlog for JSON output.

    Args:
        level:  Minimum level name; unknown names fall back to ``warning``.
        stream: Destination for records; ``sys.stderr`` at call time when
                omitted.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream if stream is not None else sys.stderr),
        cache_logger_on_first_use=True,
    )


def bind_run_context(**values: Any) -> None:
    """Attach *values* to every record logged for the rest of this run."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def get_logger(component: str) -> FilteringBoundLogger:
    """Get a logger bound with a component name."""
    return cast(FilteringBoundLogger, structlog.get_logger(component=component))
