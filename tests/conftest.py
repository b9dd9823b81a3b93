"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- Chain fixtures: empty batch and reactive chains
- Callback fixtures: recorders that log which hooks ran, in order
- File fixtures: manifests written to temporary directories
- Graph fixtures: seeded random acyclic constraint sets
"""

import random
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from hookchain.chain import BatchHookchain, ReactiveHookchain

# =============================================================================
# Chain Fixtures
# =============================================================================


@pytest.fixture
def batch_chain() -> BatchHookchain:
    """Create an empty batch chain taking no arguments."""
    return BatchHookchain(arity=0)


@pytest.fixture
def reactive_chain() -> ReactiveHookchain:
    """Create an empty reactive chain taking no arguments."""
    return ReactiveHookchain(arity=0)


# =============================================================================
# Callback Fixtures
# =============================================================================


class CallLog:
    """Records hook invocations in order."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.args: list[tuple[Any, ...]] = []

    def callback(self, name: str) -> Callable[..., None]:
        """Return a callback that appends ``name`` when invoked."""

        def _callback(*args: Any) -> None:
            self.calls.append(name)
            self.args.append(args)

        _callback.__name__ = f"hook_{name}"
        return _callback

    def failing(self, name: str, error: Exception) -> Callable[..., None]:
        """Return a callback that records ``name`` and then raises ``error``."""

        def _callback(*args: Any) -> None:
            self.calls.append(name)
            raise error

        return _callback


@pytest.fixture
def call_log() -> CallLog:
    """Create a fresh call recorder."""
    return CallLog()


# =============================================================================
# File Fixtures
# =============================================================================


@pytest.fixture
def write_manifest(tmp_path: Path) -> Callable[[str], Path]:
    """Factory writing YAML text to a manifest file under tmp_path."""

    def _write(content: str, name: str = "hooks.yaml") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


# =============================================================================
# Graph Fixtures
# =============================================================================


@pytest.fixture
def random_dag() -> Callable[[int], tuple[list[str], list[tuple[str, str]]]]:
    """
    Factory returning ``(names, edges)`` for a seeded random acyclic graph.

    Edges only point forward in a hidden topological order. Both lists are
    shuffled so registration order says nothing about that order.
    """

    def _build(seed: int, size: int = 12) -> tuple[list[str], list[tuple[str, str]]]:
        rng = random.Random(seed)
        order = [f"h{i}" for i in range(size)]
        rng.shuffle(order)
        edges = [
            (order[i], order[j])
            for i in range(size)
            for j in range(i + 1, size)
            if rng.random() < 0.25
        ]
        names = list(order)
        rng.shuffle(names)
        rng.shuffle(edges)
        return names, edges

    return _build

