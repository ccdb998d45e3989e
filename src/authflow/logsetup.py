"""Structured logging setup for authflow runs."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def configure_logging(
    verbose: bool = False,
    debug: bool = False,
    json_logs: bool = False,
    **run_context: Any,
) -> None:
    """
    Configure stdlib logging and structlog for a test run.

    Args:
        verbose: Show info-level flow and step events
        debug: Also show waits, lookups and inbox polls
        json_logs: Render one JSON object per line (for CI log collectors)
        **run_context: Bound to every event, e.g. environment or test name
    """
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(format="%(message)s", level=level)

    if json_logs:
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    structlog.contextvars.clear_contextvars()
    if run_context:
        structlog.contextvars.bind_contextvars(**run_context)
