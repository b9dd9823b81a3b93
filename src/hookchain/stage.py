"""Stages - aggregate-completion gates over events, triggers and other stages.

A stage completes once every dependency it was built with has fired. At that
moment all of its subscribers run, once. A dependency that fires again after
completion resets the stage, counting itself as already satisfied, so the
stage can complete again when the remaining dependencies fire.

Example:
    mods_loaded = StageTrigger("mods_loaded")
    client_ready = Event("client_ready")

    game_ready = (
        Stage.builder("game_ready")
        .after(mods_loaded)
        .after(client_ready)
        .build()
    )
    game_ready.subscribe(start_game)

    game_ready.trigger(mods_loaded)
    client_ready.post()  # start_game runs here
"""

import functools
from collections.abc import Callable
from typing import Any, Union

import structlog

from .utils.locking import new_lock, synchronized

logger = structlog.get_logger(__name__)


class Event:
    """
    Publish/subscribe event with any number of positional arguments.

    Cancellable events stop at the first handler returning False.
    Handlers installed by stages always run before ordinary subscribers.
    """

    def __init__(self, name: str | None = None, cancellable: bool = False) -> None:
        self.name = name or "event"
        self.cancellable = cancellable
        self._handlers: list[Callable[..., Any]] = []
        self._stage_handlers: list[Callable[..., Any]] = []
        self._lock = new_lock()

    def __repr__(self) -> str:
        return f"Event({self.name!r})"

    @synchronized
    def subscribe(self, handler: Callable[..., Any]) -> bool:
        """
        Add a handler.

        Returns:
            False if the handler was already subscribed
        """
        if handler in self._handlers or handler in self._stage_handlers:
            return False
        # Copy-on-write so that post() can iterate a stable snapshot
        self._handlers = [*self._handlers, handler]
        return True

    @synchronized
    def subscribe_stage(self, handler: Callable[..., Any]) -> bool:
        """Add a handler that runs ahead of ordinary subscribers."""
        if handler in self._handlers or handler in self._stage_handlers:
            return False
        self._stage_handlers = [*self._stage_handlers, handler]
        return True

    @synchronized
    def handlers(self) -> list[Callable[..., Any]]:
        """Handlers in call order."""
        return [*self._stage_handlers, *self._handlers]

    def post(self, *args: Any) -> bool:
        """
        Call every handler with ``args``.

        Returns:
            False if a cancellable event was cancelled, True otherwise
        """
        for handler in self.handlers():
            result = handler(*args)
            if self.cancellable and result is False:
                logger.debug("Event cancelled", event_name=self.name)
                return False
        return True


class StageTrigger:
    """Dependency fired explicitly through ``Stage.trigger``."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name or "trigger"

    def __repr__(self) -> str:
        return f"StageTrigger({self.name!r})"


Dependency = Union["Stage", Event, StageTrigger]


class StageBuilder:
    """Collect stage dependencies, in the order they were given."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._dependencies: list[Dependency] = []

    def after(self, dependency: Dependency) -> "StageBuilder":
        if not isinstance(dependency, (Stage, Event, StageTrigger)):
            raise TypeError(f"unsupported stage dependency: {dependency!r}")
        if dependency not in self._dependencies:
            self._dependencies.append(dependency)
        return self

    def build(self) -> "Stage":
        return Stage(self.name, self._dependencies)


class Stage:
    """Gate that opens when all of its dependencies have fired."""

    @staticmethod
    def builder(name: str) -> StageBuilder:
        return StageBuilder(name)

    def __init__(self, name: str, dependencies: list[Dependency] | None = None) -> None:
        self.name = name
        self._dependencies: tuple[Dependency, ...] = tuple(dependencies or ())
        self._missing: set[int] = set()
        self._handlers: list[Callable[[], Any]] = []
        self._lock = new_lock()

        self._subscribe_all()
        self._reset()

    def __repr__(self) -> str:
        return f"Stage {self.name}"

    @synchronized
    def subscribe(self, handler: Callable[[], Any]) -> bool:
        """
        Run ``handler`` every time the stage completes.

        Returns:
            False if the handler was already subscribed
        """
        if handler in self._handlers:
            return False
        self._handlers = [*self._handlers, handler]
        return True

    @synchronized
    def is_done(self) -> bool:
        return not self._missing

    @synchronized
    def missing(self) -> list[Dependency]:
        """Dependencies that have not fired yet, in declaration order."""
        return [dep for dep in self._dependencies if id(dep) in self._missing]

    def trigger(self, trigger: StageTrigger) -> None:
        """Fire a trigger dependency."""
        self._on_dependency(trigger)

    def _subscribe_all(self) -> None:
        for dependency in self._dependencies:
            callback = functools.partial(self._on_dependency, dependency)
            if isinstance(dependency, Stage):
                dependency.subscribe(callback)
            elif isinstance(dependency, Event):
                dependency.subscribe_stage(_ignore_args(callback))

    @synchronized
    def _on_dependency(self, dependency: Dependency) -> None:
        key = id(dependency)
        if key in self._missing:
            self._missing.discard(key)
            if not self._missing:
                logger.debug("Stage completed", stage=self.name)
                for handler in self._handlers:
                    handler()
        elif not self._missing and any(dep is dependency for dep in self._dependencies):
            # Fired again after completion: start over with this one satisfied
            logger.debug("Stage reset", stage=self.name, dependency=repr(dependency))
            self._reset()
            self._missing.discard(key)

    def _reset(self) -> None:
        self._missing = {id(dep) for dep in self._dependencies}


def _ignore_args(callback: Callable[[], Any]) -> Callable[..., None]:
    def handler(*args: Any) -> None:
        callback()

    return handler
