"""structlog setup for the CLI.

stdout carries the dumped command stream, so log output always goes to
stderr.
"""

from __future__ import annotations

import logging
import sys

import structlog


def _stderr_logger(*args: object) -> structlog.PrintLogger:
    # Resolved per call so a swapped sys.stderr (tests, CliRunner) is honoured.
    return structlog.PrintLogger(sys.stderr)


def configure_logging(level: str = "warning") -> None:
    """Route structlog output to stderr, dropping events below *level*."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        msg = f"Unknown log level: {level}"
        raise ValueError(msg)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
