"""Observability - logging and metrics."""

from .logger import TRACE, VERBOSE, LogContext, configure_logging, current_context, get_log_level
from .metrics import LoggerBackend, MetricsCollector

__all__ = [
    "MetricsCollector",
    "LoggerBackend",
    "configure_logging",
    "get_log_level",
    "current_context",
    "LogContext",
    "TRACE",
    "VERBOSE",
]
