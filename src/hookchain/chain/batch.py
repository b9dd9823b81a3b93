"""Batch hookchain - compile once, run the whole chain on every call."""

from typing import Any

import structlog

from ..dependency.graph import HookNode
from ..observability.logger import LogContext
from ..observability.metrics import MetricsCollector
from ..utils.locking import synchronized
from .base import ExecutionStrategy, Hookchain

logger = structlog.get_logger(__name__)


class BatchHookchain(Hookchain):
    """
    One-shot, full-chain execution with lazy recompilation.

    States:
        Dirty: registrations happened since the last compile
        Clean: ``_order`` reflects the current graph

    Any mutation moves the chain to Dirty. ``call`` compiles first if needed,
    then invokes every callback in order, synchronously, with the same
    arguments. A failing callback aborts the rest of the chain but leaves the
    compiled order intact, so calling again is safe.
    """

    strategy = ExecutionStrategy.BATCH

    def __init__(
        self,
        arity: int | None = None,
        metrics: MetricsCollector | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(arity=arity, metrics=metrics, name=name)
        self._order: list[HookNode] = []
        self._waves: list[list[str]] = []
        self._completed = False

    @synchronized
    def compile(self) -> None:
        """
        Regenerate the execution order from scratch.

        Barriers take part in ordering but are left out of the order itself.

        Raises:
            CyclicDependencyError: If the constraints contain a cycle
        """
        waves = self.graph.compile_waves()

        self._waves = [[node.name for node in wave] for wave in waves]
        self._order = [node for wave in waves for node in wave if not node.is_barrier]
        self.graph.dirty = False

        logger.debug(
            "Compiled batch order",
            chain=self.name,
            hooks=len(self._order),
            waves=len(self._waves),
        )

    @synchronized
    def order(self) -> list[str]:
        """Names of the hooks with callbacks, in execution order."""
        if self.graph.dirty:
            self.compile()
        return [node.name for node in self._order]

    @synchronized
    def waves(self) -> list[list[str]]:
        """Compiled waves (barriers included), for planning and inspection."""
        if self.graph.dirty:
            self.compile()
        return [list(wave) for wave in self._waves]

    @synchronized
    def call(self, *args: Any) -> None:
        """
        Call all hooks in this chain.

        This will reconstruct the order if any hooks or constraints changed.

        Args:
            *args: Data to be fed to all hooks for processing

        Raises:
            CyclicDependencyError: If the order cannot be compiled
            ChainExecutionError: If a callback raises
            ArityMismatchError: If ``args`` does not match the chain's arity
        """
        self._check_args(args)

        if self.graph.dirty:
            self.compile()

        self._completed = False
        order = self._order

        with LogContext(chain=self.name, strategy=self.strategy.value):
            logger.debug("Running hookchain", hooks=len(order))
            for node in order:
                self._invoke(node, args)

        self._completed = True

    def run(self, *args: Any) -> None:
        self.call(*args)

    @synchronized
    def is_done(self) -> bool:
        """True once a full call completed and nothing was registered since."""
        return self._completed and not self.graph.dirty
