"""Structured logging configuration.

Adds two levels around the standard ones:
- VERBOSE (15): one line per hook invocation
- TRACE (5): everything, including graph bookkeeping
"""

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import structlog

# Context variables merged into every log event
_log_context: ContextVar[dict[str, Any]] = ContextVar("hookchain_log_context", default={})

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class LogContext:
    """
    Context manager for adding context to logs.

    Usage:
        with LogContext(chain="startup", strategy="batch"):
            logger.info("Running hookchain")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.new_context = kwargs
        self.token = None

    def __enter__(self) -> "LogContext":
        """Enter context and merge new values."""
        current = _log_context.get().copy()
        current.update(self.new_context)
        self.token = _log_context.set(current)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context and restore previous values."""
        if self.token:
            _log_context.reset(self.token)


def current_context() -> dict[str, Any]:
    """Return a copy of the active log context."""
    return _log_context.get().copy()


def _context_processor(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor to inject context variables."""
    context = _log_context.get()
    if context:
        event_dict.update(context)
    return event_dict


def get_log_level(level: str) -> int:
    """
    Get numeric log level from string.

    Args:
        level: Level name (TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Numeric log level (INFO for unknown names)
    """
    return LOG_LEVELS.get(level.upper(), logging.INFO)


def _handlers(log_file: str | Path | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))
    return handlers


def _quiet_components(log_filter: str) -> None:
    """Raise every package logger not matching a fragment of ``log_filter`` to WARNING."""
    prefix = "hookchain."
    keep = [fragment.strip() for fragment in log_filter.split(",") if fragment.strip()]
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(prefix) and not any(k in name[len(prefix) :] for k in keep):
            logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: str | Path | None = None,
    log_filter: str | None = None,
) -> None:
    """
    Route structlog through the standard logging module.

    Args:
        level: Logging level (TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Render one JSON object per line instead of console text
        log_file: Optional file receiving the same output as stderr
        log_filter: Comma-separated logger name fragments to keep (e.g., "chain,bus");
            other hookchain loggers are raised to WARNING
    """
    log_level = get_log_level(level)
    logging.basicConfig(format="%(message)s", level=log_level, handlers=_handlers(log_file), force=True)
    logging.getLogger().setLevel(log_level)

    if log_filter:
        _quiet_components(log_filter)

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _context_processor,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
