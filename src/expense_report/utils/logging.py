"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(*, verbose: bool = False, json_output: bool = False) -> None:
    """Configure structlog for stderr output.

    Args:
        verbose: If True, log at DEBUG. Otherwise WARNING, so command
            output on stdout stays readable.
        json_output: Render one JSON object per line instead of the
            console format.
    """
    log_level = logging.DEBUG if verbose else logging.WARNING
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    # httpx logs every request at INFO through stdlib logging
    logging.basicConfig(level=log_level, stream=sys.stderr, format="%(message)s")
