"""Hook buses built on hookchains.

LoadingBus
    Named loading marks on a reactive chain. Hooks declare which marks (or
    other hooks) they follow; ``call(mark)`` signals that a mark was reached
    and runs everything that became ready.

EventBus
    One batch chain per event class. ``@hook`` methods taking a single
    parameter annotated with a ``BusEvent`` subclass are registered on that
    class's chain; ``post(event)`` runs it with the event instance.
"""

import inspect
import typing
from collections.abc import Callable
from typing import Any

import structlog

from .chain import ROOT, BatchHookchain, ReactiveHookchain
from .discovery.annotations import add_annotated_hooks, add_hook, iter_annotated
from .observability.metrics import MetricsCollector
from .utils.locking import new_lock, synchronized

logger = structlog.get_logger(__name__)


class LoadingBus:
    """Staged loading driven by external marks."""

    def __init__(self, metrics: MetricsCollector | None = None) -> None:
        self.hookchain = ReactiveHookchain(arity=0, metrics=metrics, name="loading")

    def register(self, obj: Any) -> list[str]:
        """Register every zero-argument ``@hook`` member of ``obj``."""
        return add_annotated_hooks(self.hookchain, obj)

    def register_hook_name(self, mark: str) -> None:
        """Declare a mark; it completes only when ``call(mark)`` is made."""
        self.hookchain.add(mark)

    def start(self) -> None:
        """Run every hook that does not wait on anything."""
        logger.info("Starting loading bus", hooks=len(self.hookchain))
        self.hookchain.call(ROOT)

    def call(self, mark: str) -> None:
        """Signal that ``mark`` was reached."""
        logger.debug("Loading mark reached", mark=mark)
        self.hookchain.call(mark)

    def has_run(self, name: str) -> bool:
        return self.hookchain.has_run(name)

    def is_done(self) -> bool:
        return self.hookchain.is_done()


class BusEvent:
    """Base class for events posted on an EventBus."""


class EventBus:
    """Dispatch events to ordered hooks keyed by event class."""

    def __init__(self, metrics: MetricsCollector | None = None) -> None:
        self.metrics = metrics
        self._chains: dict[type[BusEvent], BatchHookchain] = {}
        self._lock = new_lock()

    def chain_for(self, event_type: type[BusEvent]) -> BatchHookchain | None:
        """Return the chain registered for ``event_type``, if any."""
        return self._chains.get(event_type)

    @synchronized
    def _get_or_create_chain(self, event_type: type[BusEvent]) -> BatchHookchain:
        chain = self._chains.get(event_type)
        if chain is None:
            chain = BatchHookchain(arity=1, metrics=self.metrics, name=event_type.__name__)
            self._chains[event_type] = chain
        return chain

    def register(self, obj: Any) -> list[str]:
        """
        Register the event hooks of ``obj``.

        Returns:
            Names of the hooks registered
        """
        registered: list[str] = []
        for spec, callback in iter_annotated(obj):
            event_type = _event_parameter(callback)
            if event_type is None:
                continue
            add_hook(self._get_or_create_chain(event_type), spec, callback)
            registered.append(spec.name)

        logger.debug("Registered event hooks", source=type(obj).__name__, hooks=registered)
        return registered

    def post(self, event: BusEvent) -> None:
        """Run the hooks registered for the exact class of ``event``."""
        chain = self._chains.get(type(event))
        if chain is not None:
            chain.call(event)


def _event_parameter(callback: Callable[..., Any]) -> type[BusEvent] | None:
    """Return the BusEvent subclass taken by a one-parameter callback."""
    try:
        parameters = list(inspect.signature(callback).parameters.values())
    except (TypeError, ValueError):
        return None
    if len(parameters) != 1:
        return None

    func = getattr(callback, "__func__", callback)
    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError):
        return None

    hint = hints.get(parameters[0].name)
    if isinstance(hint, type) and issubclass(hint, BusEvent) and hint is not BusEvent:
        return hint
    return None
