"""Structured logging setup for command-line use."""

import logging
import sys

import structlog


def configure_logging(level: str = "WARNING", json_output: bool = False):
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ...)
        json_output: Render JSON lines instead of console key=value output
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
