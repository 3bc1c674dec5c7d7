"""
MalleableEngine — Structured Logging
structlog on top of the standard library, configured once per process.

Levels used across the engines:
  - error: resource-write failures (e.g. a schedule image that cannot be saved)
  - info:  high-level progress and solution summaries
  - debug: intermediate algorithmic state (frontiers, LP candidates, allotments)
"""

import logging
import sys
from typing import Optional

import structlog

from .config import get_settings

_LEVELS = {
    "error": logging.ERROR,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

_configured = False


class _StderrHandler(logging.StreamHandler):
    """StreamHandler bound to the current sys.stderr at emit time."""

    def __init__(self):
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def _configure_structlog(log_format: str, cache: bool) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.processors.JSONRenderer()
                if log_format == "json"
                else structlog.dev.ConsoleRenderer(colors=False)
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=cache,
    )


# Until setup_logging runs, events follow the unconfigured root logger:
# warnings and errors on stderr, nothing on stdout.
_configure_structlog("console", cache=False)


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure structlog and the root logger; calls after the first only validate `level`."""
    global _configured
    settings = get_settings()
    level = (level or settings.log_level).lower()
    log_format = log_format or settings.log_format
    if level not in _LEVELS:
        raise ValueError(f"Unknown log level '{level}'. Use one of: {', '.join(_LEVELS)}")
    if _configured:
        return

    _configure_structlog(log_format, cache=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(_LEVELS[level])
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stdout carries the result lines, diagnostics go to stderr
    handler = _StderrHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
