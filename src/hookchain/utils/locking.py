"""
Concurrency utilities.
"""

import functools
import threading
from collections.abc import Callable
from typing import Any, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


def synchronized(method: F) -> F:
    """
    Run a method while holding the instance's ``_lock``.

    CONCURRENCY MODEL:
    Every hookchain instance owns exactly one re-entrant lock covering all of
    its public operations (registration, compilation, execution, queries).
    Callbacks run while the lock is held, so a blocking callback stalls other
    threads using the same chain. The lock is re-entrant so that a callback
    may register hooks or trigger the chain it is running on.

    USAGE:
        class Chain:
            def __init__(self):
                self._lock = threading.RLock()

            @synchronized
            def add(self, name): ...
    """

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def new_lock() -> threading.RLock:
    """Create the per-instance lock used by ``synchronized``."""
    return threading.RLock()
