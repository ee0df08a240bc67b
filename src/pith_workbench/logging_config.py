"""Structured logging setup shared by the API server and the CLI."""

import logging
import sys

import structlog

from pith_workbench.config import Settings, settings as default_settings


def _stderr_logger_factory(*args) -> structlog.PrintLogger:
    # Resolve sys.stderr per call; test runners swap it between invocations
    return structlog.PrintLogger(file=sys.stderr)


def setup_logging(
    settings: Settings | None = None, stderr: bool = False, level: int | None = None
) -> None:
    """Configure structured logging.

    The CLI logs to stderr so that JSON output on stdout stays parseable, and
    passes an explicit level for its --verbose flag.
    """
    settings = settings or default_settings
    if level is None:
        level = logging.INFO if not settings.debug else logging.DEBUG
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if not settings.debug else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=_stderr_logger_factory if stderr else structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=not stderr,
    )
