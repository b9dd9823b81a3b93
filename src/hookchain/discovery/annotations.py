"""Decorator-based hook discovery.

Functions and methods marked with ``@hook`` carry their declaration; the
adapter functions here turn those declarations into registrations on a chain.
The chains themselves never introspect anything.
"""

from collections.abc import Callable, Iterable, Iterator
from types import ModuleType
from typing import Any, TypeVar

import structlog

from ..chain.base import Hookchain
from .models import HookSpec

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

HOOK_ATTRIBUTE = "__hookchain_hook__"


def hook(name: str, before: Iterable[str] = (), after: Iterable[str] = ()) -> Callable[[F], F]:
    """
    Mark a function or method as a hook.

    Args:
        name: Name of the hook
        before: Hooks which should run before this hook
        after: Hooks which are supposed to run after this one

    Example:
        class Startup:
            @hook("load_mods", before=["read_config"], after=["init_mods"])
            def load_mods(self) -> None: ...
    """
    spec = HookSpec(name=name, before=tuple(before), after=tuple(after))

    def decorator(func: F) -> F:
        setattr(func, HOOK_ATTRIBUTE, spec)
        return func

    return decorator


def get_hook_spec(obj: Any) -> HookSpec | None:
    """Return the declaration attached by ``@hook``, if any."""
    func = getattr(obj, "__func__", obj)
    spec = getattr(func, HOOK_ATTRIBUTE, None)
    return spec if isinstance(spec, HookSpec) else None


def add_hook(chain: Hookchain, spec: HookSpec, callback: Callable[..., Any] | None) -> None:
    """
    Register one hook declaration and its constraints atomically.

    Args:
        chain: Chain to register on
        spec: Hook declaration
        callback: Callback to bind (None registers a barrier)
    """
    with chain.lock:
        chain.add(spec.name, callback)
        for other in spec.before:
            chain.add_constraint(other, spec.name)
        for other in spec.after:
            chain.add_constraint(spec.name, other)


def iter_annotated(obj: Any) -> Iterator[tuple[HookSpec, Callable[..., Any]]]:
    """
    Yield ``(spec, callback)`` for every ``@hook`` member of ``obj``.

    ``obj`` may be an instance (methods are bound to it), a class, or a
    module. Members are visited in definition order, base classes first.
    """
    if isinstance(obj, ModuleType):
        members: dict[str, Any] = dict(vars(obj))
    else:
        owner = obj if isinstance(obj, type) else type(obj)
        members = {}
        for cls in reversed(owner.__mro__):
            members.update(vars(cls))

    for attribute, raw in members.items():
        spec = get_hook_spec(raw)
        if spec is None:
            continue
        yield spec, getattr(obj, attribute)


def add_annotated_hooks(chain: Hookchain, obj: Any) -> list[str]:
    """
    Register every ``@hook`` member of ``obj`` whose arity fits the chain.

    Members that cannot take the chain's arguments are skipped, so one object
    may carry hooks for several chains.

    Args:
        chain: Chain to register on
        obj: Instance, class or module to scan

    Returns:
        Names of the hooks registered
    """
    registered: list[str] = []

    for spec, callback in iter_annotated(obj):
        if not chain.accepts(callback):
            logger.debug(
                "Skipping hook with mismatched arity",
                hook=spec.name,
                chain=chain.name,
                arity=chain.arity,
            )
            continue
        add_hook(chain, spec, callback)
        registered.append(spec.name)

    logger.debug(
        "Registered annotated hooks",
        source=type(obj).__name__,
        chain=chain.name,
        hooks=registered,
    )
    return registered
