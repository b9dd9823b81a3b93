"""Hookchain execution strategies."""

from ..observability.metrics import MetricsCollector
from .base import ExecutionStrategy, Hookchain
from .batch import BatchHookchain
from .reactive import ROOT, ReactiveHookchain

_STRATEGIES: dict[ExecutionStrategy, type[Hookchain]] = {
    ExecutionStrategy.BATCH: BatchHookchain,
    ExecutionStrategy.REACTIVE: ReactiveHookchain,
}


def create_hookchain(
    strategy: ExecutionStrategy | str = ExecutionStrategy.BATCH,
    arity: int | None = None,
    metrics: MetricsCollector | None = None,
    name: str | None = None,
) -> Hookchain:
    """
    Create a hookchain for the given execution strategy.

    Args:
        strategy: "batch" or "reactive"
        arity: Number of positional arguments every callback takes
        metrics: Optional metrics collector
        name: Optional label used in log events

    Returns:
        A new, empty hookchain

    Raises:
        ValueError: If the strategy is unknown
    """
    chain_class = _STRATEGIES[ExecutionStrategy(strategy)]
    return chain_class(arity=arity, metrics=metrics, name=name)


__all__ = [
    "ROOT",
    "BatchHookchain",
    "ExecutionStrategy",
    "Hookchain",
    "ReactiveHookchain",
    "create_hookchain",
]
