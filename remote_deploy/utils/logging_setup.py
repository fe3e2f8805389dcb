"""
remote_deploy/utils/logging_setup.py

One-time structlog configuration, called by the entrypoint after settings
are loaded. Level comes from the explicit settings object (verbose ->
DEBUG), never from re-reading inputs at log time.

Logs go to stderr; stdout carries deployment output and workflow commands.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

import structlog


def configure_logging(verbose: bool = False, log_level: str = "INFO", stream: Optional[TextIO] = None) -> int:
    """
    Configure structlog and return the effective numeric level.
    """
    level = logging.DEBUG if verbose else logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )
    return level
