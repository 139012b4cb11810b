"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import Processor


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(log_format: str, colors: bool) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=colors)


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
) -> None:
    """
    Set up process-wide structured logging with structlog.

    Output goes to stderr so stdout stays free for command results.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )

    structlog.configure(
        processors=[*_shared_processors(), _renderer(log_format, colors=sys.stderr.isatty())],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger instance from the process-wide configuration.

    Args:
        name: Logger name (module name typically)
        **initial_context: Initial context to bind to the logger

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def build_logger(
    enabled: bool,
    level: str = "INFO",
    log_format: str = "console",
    stream: TextIO | None = None,
    **initial_context: Any,
) -> Any:
    """
    Build a logger owned by one client, independent of global structlog state.

    A disabled logger filters everything below CRITICAL and discards the
    rest, so ``logs=False`` costs nothing and prints nothing.

    Args:
        enabled: Whether the client's logs are emitted
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
        stream: Output stream (default stderr)
        **initial_context: Initial context to bind to the logger

    Returns:
        A bound structlog logger
    """
    if enabled:
        output = stream or sys.stderr
        sink: Any = structlog.PrintLogger(file=output)
        min_level = getattr(logging, level.upper())
        colors = bool(getattr(output, "isatty", lambda: False)())
    else:
        sink = structlog.ReturnLogger()
        min_level = logging.CRITICAL
        colors = False

    logger = structlog.wrap_logger(
        sink,
        processors=[*_shared_processors(), _renderer(log_format, colors=colors)],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
    )
    return logger.bind(**initial_context)
