"""Metrics for hook execution.

A chain reports to a ``MetricsCollector`` only when one is passed to it. The
collector names the series it writes:

- ``hookchain_invocation_total``: callbacks run, tagged by hook and status
- ``hookchain_invocation_duration_ms``: callback latency, tagged by hook
- ``hookchain_pending_hooks``: reactive nodes not yet completed
"""

from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

SeriesKey = tuple[str, tuple[tuple[str, str], ...]]


def _series(name: str, tags: dict[str, str] | None) -> SeriesKey:
    return name, tuple(sorted((tags or {}).items()))


def _render(key: SeriesKey) -> str:
    name, tags = key
    if not tags:
        return name
    return f"{name}[{','.join(f'{k}={v}' for k, v in tags)}]"


class MetricsBackend(ABC):
    """Sink for counters, gauges and timings."""

    @abstractmethod
    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass

    def get_summary(self) -> dict[str, Any]:
        return {}


class LoggerBackend(MetricsBackend):
    """In-memory backend whose summary is written to the log at the end of a run."""

    def __init__(self) -> None:
        self._counters: Counter[SeriesKey] = Counter()
        self._gauges: dict[SeriesKey, float] = {}
        self._timings: dict[SeriesKey, list[float]] = defaultdict(list)

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        self._counters[_series(name, tags)] += value

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        # Last write wins
        self._gauges[_series(name, tags)] = value

    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self._timings[_series(name, tags)].append(value)

    def counter(self, name: str, tags: dict[str, str] | None = None) -> int:
        """Current value of one counter series."""
        return self._counters[_series(name, tags)]

    def get_summary(self) -> dict[str, Any]:
        """
        Flatten every series into ``name[tag=value,...]`` keys.

        Timings are reduced to count, avg, min and max.
        """
        timings = {}
        for key, values in self._timings.items():
            if values:
                timings[_render(key)] = {
                    "count": len(values),
                    "avg": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                }

        return {
            "counters": {_render(key): value for key, value in self._counters.items()},
            "gauges": {_render(key): value for key, value in self._gauges.items()},
            "timings": timings,
        }


BACKENDS: dict[str, type[MetricsBackend]] = {
    "logger": LoggerBackend,
}


class MetricsCollector:
    """Records invocation outcomes, latency and the reactive pending count."""

    def __init__(self, backend: str = "logger") -> None:
        """
        Initialize Metrics Collector.

        Args:
            backend: Key into ``BACKENDS``. Unknown keys fall back to "logger".
        """
        backend_class = BACKENDS.get(backend)
        if backend_class is None:
            logger.warning("Unknown metrics backend, defaulting to 'logger'", backend=backend)
            backend_class = LoggerBackend
        self.backend: MetricsBackend = backend_class()

    def count_invocation(self, hook: str, status: str) -> None:
        """Record a callback outcome ("succeeded" or "failed")."""
        self.backend.increment("hookchain_invocation_total", tags={"hook": hook, "status": status})

    def record_latency(self, hook: str, duration_ms: float) -> None:
        self.backend.timing("hookchain_invocation_duration_ms", duration_ms, tags={"hook": hook})

    def update_pending(self, pending: int) -> None:
        self.backend.gauge("hookchain_pending_hooks", float(pending))

    def get_summary(self) -> dict[str, Any]:
        return self.backend.get_summary()

    def log_summary(self) -> None:
        """Write the collected metrics as one structured log event."""
        logger.info("Hook metrics", **self.get_summary())
