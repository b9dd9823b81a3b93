"""Reactive hookchain - cascade execution as completion signals arrive.

Hooks run as soon as every hook they depend on has completed. Completion is
signalled either by a hook's own callback finishing or by an explicit
``call(name)``, which is how barrier hooks (external signals) get completed.

Execution Model:
---------------
call(ROOT)        cascades into every hook without dependencies
call(name)        completes ``name`` (invoking its callback the first time)
                  and cascades into its dependents
cascade           breadth-first over dependents in registration order; a hook
                  runs when all its dependencies completed and it has a callback

Completion is remembered per chain instance, across calls: a hook never runs
twice, but calling a completed hook again still re-evaluates its dependents,
because new dependents may have been registered since.

Cycle Detection:
---------------
Checked when a constraint is added: the edge ``before -> after`` is rejected
if ``before`` is already reachable from ``after``. The check only sees edges
that exist at that moment, so failure timing depends on registration order.
"""

from collections.abc import Iterable
from typing import Any

import structlog

from ..dependency.graph import HookNode
from ..observability.logger import LogContext
from ..observability.metrics import MetricsCollector
from ..utils.exceptions import CyclicDependencyError
from ..utils.locking import synchronized
from .base import ExecutionStrategy, Hookchain

logger = structlog.get_logger(__name__)

# Virtual key with no dependencies; calling it starts every root hook.
ROOT = ""


class ReactiveHookchain(Hookchain):
    """
    Incremental, trigger-driven hookchain with per-hook completion memory.
    """

    strategy = ExecutionStrategy.REACTIVE

    def __init__(
        self,
        arity: int | None = None,
        metrics: MetricsCollector | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(arity=arity, metrics=metrics, name=name)
        self._completed: set[str] = set()
        self._roots: list[str] = []
        # Hooks emitted during the outermost call in progress (None when idle)
        self._emitted: set[str] | None = None

    @synchronized
    def add_constraint(self, before: str, after: str) -> None:
        """
        Add a before-comes-before-after constraint.

        Raises:
            CyclicDependencyError: If the edge would close a cycle with the
                edges registered so far. Nothing is added in that case.
        """
        if self.graph.would_close_cycle(before, after):
            path = self.graph.find_path(after, before) or [after]
            logger.error("Rejected cyclic constraint", before=before, after=after, cycle=path)
            raise CyclicDependencyError(
                f"adding constraint {before} -> {after} would create a cycle",
                unresolved=[before, after],
                cycles=[path],
            )
        self.graph.add_constraint(before, after)

    @synchronized
    def compile(self) -> None:
        """Refresh the root index used by ``call(ROOT)``."""
        self._roots = [node.name for node in self.graph.roots()]
        self.graph.dirty = False
        logger.debug("Indexed reactive roots", chain=self.name, roots=len(self._roots))

    @synchronized
    def call(self, key: str = ROOT, *args: Any) -> None:
        """
        Complete a hook and run every hook whose dependencies are now met.

        Args:
            key: Hook to complete, or ROOT to start all hooks without dependencies
            *args: Data to be fed to all hooks for processing

        Raises:
            ChainExecutionError: If a callback raises; the cascade stops there
            ArityMismatchError: If ``args`` does not match the chain's arity
        """
        self._check_args(args)

        if self.graph.dirty:
            self.compile()

        outermost = self._emitted is None
        if outermost:
            self._emitted = set()

        try:
            with LogContext(chain=self.name, strategy=self.strategy.value):
                self._trigger(key, args)
        finally:
            if outermost:
                self._emitted = None
            if self.metrics:
                self.metrics.update_pending(len(self.graph) - len(self._completed))

    def run(self, *args: Any) -> None:
        self.call(ROOT, *args)

    def _trigger(self, key: str, args: tuple[Any, ...]) -> None:
        if key == ROOT:
            logger.debug("Cascading from root", roots=len(self._roots))
            self._cascade(self.graph.ordered(self._roots), args)
            return

        node = self.graph.get(key)
        if node is None:
            logger.debug("Ignoring call for unknown hook", hook=key)
            return

        assert self._emitted is not None
        if key in self._completed or key in self._emitted:
            logger.debug("Hook already completed, re-evaluating dependents", hook=key)
        else:
            self._complete(node, args)

        self._cascade([node], args)

    def _complete(self, node: HookNode, args: tuple[Any, ...]) -> None:
        assert self._emitted is not None
        # Marked before invoking so a nested call cannot start the same hook again
        self._emitted.add(node.name)
        if node.callback is not None:
            self._invoke(node, args)
        self._completed.add(node.name)

    def _cascade(self, wave: Iterable[HookNode], args: tuple[Any, ...]) -> None:
        """
        Walk dependents breadth-first, running each hook that became ready.

        Completed hooks are expanded (their dependents re-evaluated) but never
        invoked again. Barriers are never completed by the cascade.
        """
        assert self._emitted is not None
        expanded: set[str] = set()
        current = list(wave)

        while current:
            following: list[HookNode] = []
            for node in current:
                if node.name in expanded:
                    continue

                if node.name not in self._completed:
                    if (
                        node.is_barrier
                        or node.name in self._emitted
                        or not node.is_satisfied_by(self._completed)
                    ):
                        continue
                    self._complete(node, args)

                expanded.add(node.name)
                following.extend(self.graph.dependents(node.name))

            current = following

    @synchronized
    def has_run(self, name: str) -> bool:
        """True if ``name`` has completed."""
        return name in self._completed

    @synchronized
    def is_ready(self, name: str) -> bool:
        """True if ``name`` has completed or all its dependencies have."""
        node = self.graph.get(name)
        if node is None:
            return False
        return name in self._completed or node.is_satisfied_by(self._completed)

    @synchronized
    def pending(self) -> list[str]:
        """Hooks that have not completed yet, in registration order."""
        return [name for name in self.graph.nodes if name not in self._completed]

    @synchronized
    def completed(self) -> list[str]:
        """Hooks that have completed, in registration order."""
        return [name for name in self.graph.nodes if name in self._completed]

    @synchronized
    def is_done(self) -> bool:
        """True when every registered hook, barriers included, has completed."""
        return all(name in self._completed for name in self.graph.nodes)

    @synchronized
    def reset(self) -> None:
        """Forget all completions."""
        self._completed.clear()
        logger.debug("Reset reactive completion state", chain=self.name)
