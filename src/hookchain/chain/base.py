"""Hookchain base - node bookkeeping shared by every execution strategy."""

import inspect
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any

import structlog

from ..dependency.graph import HookGraph, HookNode
from ..observability.metrics import MetricsCollector
from ..utils.exceptions import ArityMismatchError, ChainExecutionError
from ..utils.locking import new_lock, synchronized

logger = structlog.get_logger(__name__)


class ExecutionStrategy(str, Enum):
    """How a hookchain turns its constraints into callback invocations."""

    BATCH = "batch"  # Compile one linear order, run the whole chain per call
    REACTIVE = "reactive"  # Cascade from external triggers as hooks become ready


class Hookchain(ABC):
    """
    Named hooks with before/after constraints.

    Subclasses decide how the constraint graph is executed. Registration is
    shared: ``add`` creates or updates a hook, ``add_constraint`` orders two
    hooks, and referencing a name that has no callback yet creates a barrier.

    Every public operation holds the chain's re-entrant lock.
    """

    strategy: ExecutionStrategy

    def __init__(
        self,
        arity: int | None = None,
        metrics: MetricsCollector | None = None,
        name: str | None = None,
    ) -> None:
        """
        Initialize an empty hookchain.

        Args:
            arity: Number of positional arguments passed to every callback
                (None disables arity checks)
            metrics: Optional collector receiving invocation counts and latency
            name: Optional label used in log events
        """
        if arity is not None and arity < 0:
            raise ValueError(f"arity must be non-negative, got {arity}")

        self.arity = arity
        self.metrics = metrics
        self.name = name or self.strategy.value
        self.graph = HookGraph()
        self._lock = new_lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, hooks={len(self.graph)})"

    @property
    def lock(self) -> threading.RLock:
        """The chain's lock, for grouping several registrations atomically."""
        return self._lock

    @property
    def dirty(self) -> bool:
        """True while the compiled form is stale."""
        return self.graph.dirty

    @synchronized
    def __contains__(self, name: object) -> bool:
        return name in self.graph

    @synchronized
    def __len__(self) -> int:
        return len(self.graph)

    @synchronized
    def get(self, name: str) -> HookNode | None:
        """Return the hook registered under ``name``, if any."""
        return self.graph.get(name)

    @synchronized
    def names(self) -> list[str]:
        """Hook names in registration order."""
        return list(self.graph.nodes)

    @synchronized
    def add(self, name: str, callback: Callable[..., Any] | None = None) -> HookNode:
        """
        Add or update a hook.

        Without a callback this only makes sure the hook exists; it then acts
        as a barrier until a callback is bound.

        Args:
            name: Name of the hook to create or update
            callback: Callback for the given hook

        Returns:
            The hook node

        Raises:
            DuplicateHookError: If a different callback is already bound
            ArityMismatchError: If the callback cannot take the chain's arguments
        """
        if callback is not None and not self.accepts(callback):
            raise ArityMismatchError(
                f"callback for hook '{name}' cannot be called with {self.arity} argument(s)",
                expected=self.arity or 0,
            )
        return self.graph.bind(name, callback)

    @synchronized
    def add_constraint(self, before: str, after: str) -> None:
        """
        Add a before-comes-before-after constraint.

        Args:
            before: Name of the dependee
            after: Name of the dependent
        """
        self.graph.add_constraint(before, after)

    def accepts(self, callback: Callable[..., Any]) -> bool:
        """
        Check whether ``callback`` can be called with this chain's arguments.

        Callables whose signature cannot be inspected are accepted.
        """
        if self.arity is None:
            return True
        try:
            signature = inspect.signature(callback)
        except (TypeError, ValueError):
            return True
        try:
            signature.bind(*([None] * self.arity))
        except TypeError:
            return False
        return True

    def _check_args(self, args: tuple[Any, ...]) -> None:
        if self.arity is not None and len(args) != self.arity:
            raise ArityMismatchError(
                f"hookchain '{self.name}' expects {self.arity} argument(s), got {len(args)}",
                expected=self.arity,
                actual=len(args),
            )

    def _invoke(self, node: HookNode, args: tuple[Any, ...]) -> None:
        """Invoke one callback, wrapping any failure in ChainExecutionError."""
        assert node.callback is not None

        logger.debug("Calling hook", hook=node.name)
        started = time.perf_counter()
        try:
            node.callback(*args)
        except Exception as e:
            logger.error(
                "Hook callback failed",
                hook=node.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self.metrics:
                self.metrics.count_invocation(node.name, "failed")
            raise ChainExecutionError(node.name, e) from e

        if self.metrics:
            self.metrics.count_invocation(node.name, "succeeded")
            self.metrics.record_latency(node.name, (time.perf_counter() - started) * 1000)

    @abstractmethod
    def compile(self) -> None:
        """Rebuild the compiled form of the graph and clear the dirty flag."""

    @abstractmethod
    def run(self, *args: Any) -> None:
        """Run every hook that can run, passing ``args`` to each callback."""

    @abstractmethod
    def is_done(self) -> bool:
        """Report whether the chain has completed."""
