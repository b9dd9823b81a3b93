"""Hook Graph - named hooks and before/after constraints with cycle detection.

Stores the constraint graph shared by every hookchain strategy and compiles it
into execution waves.
"""

from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from ..utils.exceptions import CyclicDependencyError, DuplicateHookError

logger = structlog.get_logger(__name__)


def _dot_id(name: str) -> str:
    """Quote a hook name as a DOT ID."""
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(eq=False)
class HookNode:
    """
    Node in the hook graph.

    A node without a callback is a barrier: it never runs anything itself but
    still orders its neighbours. Barriers are a permanent, valid state.

    Attributes:
        name: Unique hook name within one chain
        callback: Unit of work invoked with the chain's arguments (None for barriers)
        dependencies: Names of hooks that must complete before this one (its "after" set)
        dependents: Names of hooks waiting on this one (inverse bookkeeping)
        index: Registration sequence, used to break ties deterministically
    """

    name: str
    callback: Callable[..., Any] | None = None
    dependencies: set[str] = field(default_factory=set)
    dependents: set[str] = field(default_factory=set)
    index: int = 0

    @property
    def is_barrier(self) -> bool:
        """True if the node only orders other hooks."""
        return self.callback is None

    def is_satisfied_by(self, completed: set[str]) -> bool:
        """Check whether every dependency is in ``completed``."""
        return self.dependencies.issubset(completed)

    def __repr__(self) -> str:
        kind = "barrier" if self.is_barrier else "callbacked"
        return (
            f"HookNode(name={self.name!r}, {kind}, "
            f"dependencies={sorted(self.dependencies)}, dependents={sorted(self.dependents)})"
        )


class HookGraph:
    """
    Directed graph of hooks and ordering constraints.

    Features:
    - Lazy node creation (referencing a name creates a barrier)
    - Bidirectional edge storage for O(1) traversal both ways
    - Wave-based topological compilation (Kahn's algorithm)
    - Insertion-time reachability check for incremental cycle detection
    - Graphviz export

    The graph itself is not thread-safe; chains serialize access to it.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, HookNode] = {}
        # Starts dirty so that the first compile always runs
        self.dirty = True
        self._sequence = 0

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, name: str) -> HookNode | None:
        """Return the node registered under ``name``, if any."""
        return self.nodes.get(name)

    def add(self, name: str) -> HookNode:
        """
        Get a node, creating it if necessary.

        Args:
            name: Hook name

        Returns:
            The existing or newly created node

        Raises:
            ValueError: If the name is empty or not a string
        """
        if not isinstance(name, str) or not name:
            raise ValueError(f"Hook name must be a non-empty string, got {name!r}")

        node = self.nodes.get(name)
        if node is not None:
            return node

        node = HookNode(name=name, index=self._sequence)
        self._sequence += 1
        self.nodes[name] = node
        self.dirty = True

        logger.debug("Added hook to graph", hook=name, index=node.index)
        return node

    def bind(self, name: str, callback: Callable[..., Any] | None) -> HookNode:
        """
        Get or create a node and attach a callback to it.

        Binding a callback that compares equal (``==``) to the one already
        attached is tolerated. Identity is not required, so re-fetched bound
        methods count as the same callback.

        Args:
            name: Hook name
            callback: Callback to attach (None only ensures the node exists)

        Returns:
            The node the callback is bound to

        Raises:
            DuplicateHookError: If a different callback is already bound
        """
        existing = self.nodes.get(name)
        if (
            callback is not None
            and existing is not None
            and existing.callback is not None
            and existing.callback != callback
        ):
            logger.warning("Rejected duplicate hook callback", hook=name)
            raise DuplicateHookError(name, existing=existing.callback, callback=callback)

        node = self.add(name)
        if callback is not None and node.callback is None:
            node.callback = callback
            self.dirty = True
            logger.debug("Bound callback to hook", hook=name)

        return node

    def add_constraint(self, before: str, after: str) -> None:
        """
        Add an ordering edge: ``before`` must be satisfied earlier than ``after``.

        Both nodes are created as barriers if they do not exist yet. The edge is
        not checked for cycles here; see ``would_close_cycle``.

        Args:
            before: Name of the dependee
            after: Name of the dependent
        """
        node_before = self.add(before)
        node_after = self.add(after)

        node_before.dependents.add(after)
        node_after.dependencies.add(before)
        self.dirty = True

        logger.debug("Added constraint", before=before, after=after)

    def would_close_cycle(self, before: str, after: str) -> bool:
        """
        Check whether adding ``before -> after`` would close a cycle right now.

        That is the case when ``before`` is already reachable from ``after``
        through existing edges. A self edge always closes a cycle.

        Args:
            before: Name of the dependee
            after: Name of the dependent

        Returns:
            True if the edge would create a cycle
        """
        if before == after:
            return True
        return self.find_path(after, before) is not None

    def find_path(self, start: str, goal: str) -> list[str] | None:
        """
        Find a path from ``start`` to ``goal`` following dependent edges.

        Breadth-first, so the path returned is a shortest one.

        Args:
            start: Hook to start from
            goal: Hook to reach

        Returns:
            Hook names from ``start`` to ``goal`` inclusive, or None
        """
        if start not in self.nodes or goal not in self.nodes:
            return None

        parents: dict[str, str | None] = {start: None}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            if current == goal:
                path: list[str] = []
                step: str | None = current
                while step is not None:
                    path.append(step)
                    step = parents[step]
                return list(reversed(path))

            for dependent in self.ordered(self.nodes[current].dependents):
                if dependent.name not in parents:
                    parents[dependent.name] = current
                    queue.append(dependent.name)

        return None

    def ordered(self, names: Iterable[str]) -> list[HookNode]:
        """Return the nodes for ``names`` in registration order."""
        return sorted((self.nodes[name] for name in names), key=lambda node: node.index)

    def roots(self) -> list[HookNode]:
        """Nodes without dependencies, in registration order."""
        return [node for node in self.nodes.values() if not node.dependencies]

    def dependents(self, name: str) -> list[HookNode]:
        """Direct dependents of ``name`` in registration order."""
        node = self.nodes.get(name)
        if node is None:
            return []
        return self.ordered(node.dependents)

    def compile_waves(self) -> list[list[HookNode]]:
        """
        Group hooks into waves using Kahn's algorithm.

        ALGORITHM:
        1. Count unmet dependencies (in-degree) for every node
        2. The first wave holds every node with in-degree 0
        3. Emitting a wave decrements the in-degree of each dependent; nodes
           reaching 0 form the next wave
        4. Stop when a wave is empty; any node left over is part of, or
           blocked by, a cycle

        Within a wave, nodes keep registration order so that two runs with the
        same registration history produce identical logs.

        Example:
            init → load → start
            init → config → start

            Waves: [[init], [load, config], [start]]

        Returns:
            Waves in execution order (barriers included)

        Raises:
            CyclicDependencyError: If no wave can be emitted while nodes remain
        """
        in_degree: dict[str, int] = {
            name: len(node.dependencies) for name, node in self.nodes.items()
        }
        wave = [node for node in self.nodes.values() if in_degree[node.name] == 0]

        waves: list[list[HookNode]] = []
        emitted = 0

        while wave:
            waves.append(wave)
            emitted += len(wave)

            ready: list[str] = []
            for node in wave:
                for dependent in node.dependents:
                    in_degree[dependent] -= 1
                    if in_degree[dependent] == 0:
                        ready.append(dependent)

            wave = self.ordered(ready)

        if emitted != len(self.nodes):
            unresolved = [name for name, degree in in_degree.items() if degree > 0]
            cycles = self.find_cycles(unresolved)
            logger.error(
                "Cyclic dependency detected",
                unresolved=unresolved,
                cycles=cycles,
            )
            raise CyclicDependencyError(
                f"cyclic dependency in hookchain involving: {', '.join(unresolved)}",
                unresolved=unresolved,
                cycles=cycles,
            )

        logger.debug(
            "Compiled hook waves",
            wave_count=len(waves),
            node_count=emitted,
        )
        return waves

    def find_cycles(self, names: Iterable[str] | None = None) -> list[list[str]]:
        """
        Find cycles with an iterative depth-first search.

        A node seen again while it is still on the current path closes a
        cycle. The search is iterative so that long chains cannot exhaust the
        interpreter stack.

        Args:
            names: Restrict the search to these hooks (default: all)

        Returns:
            Distinct cycles, each listed in constraint order
        """
        scope = set(self.nodes) if names is None else set(names) & set(self.nodes)

        on_path = 1
        finished = 2
        state: dict[str, int] = {}
        cycles: list[list[str]] = []
        seen: set[frozenset[str]] = set()

        for start in self.ordered(scope):
            if start.name in state:
                continue

            path = [start.name]
            state[start.name] = on_path
            stack = [iter(self.ordered(start.dependents & scope))]

            while stack:
                child = next(stack[-1], None)
                if child is None:
                    state[path.pop()] = finished
                    stack.pop()
                    continue

                child_state = state.get(child.name)
                if child_state is None:
                    state[child.name] = on_path
                    path.append(child.name)
                    stack.append(iter(self.ordered(child.dependents & scope)))
                elif child_state == on_path:
                    cycle = path[path.index(child.name) :]
                    key = frozenset(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)

        return cycles

    def to_dot(self) -> str:
        """
        Generate DOT format representation of the hook graph.

        Returns:
            String containing the Graphviz DOT definition
        """
        lines = ["digraph Hookchain {"]
        lines.append("    rankdir=LR;")
        lines.append("    node [shape=box style=filled];")

        for node in self.nodes.values():
            name = _dot_id(node.name)
            if node.is_barrier:
                lines.append(f'    {name} [label={name} style="filled,dashed" fillcolor="#fff3cd"];')
            else:
                lines.append(f'    {name} [label={name} fillcolor="#d4edda"];')

            for dependency in self.ordered(node.dependencies):
                lines.append(f"    {_dot_id(dependency.name)} -> {name};")

        lines.append("}")
        return "\n".join(lines)
