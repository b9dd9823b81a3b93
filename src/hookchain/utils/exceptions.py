"""Custom exceptions for hookchain.

Exception Hierarchy:
-------------------
HookchainError (base)
├── DuplicateHookError      # Two different callbacks registered under one name
├── CyclicDependencyError   # Constraints cannot be satisfied by any order
├── ChainExecutionError     # A callback raised while the chain was running
├── ArityMismatchError      # Callback or argument tuple does not fit the chain
└── ManifestError           # Declarative hook manifest could not be loaded

Usage Guidelines:
----------------
1. DuplicateHookError and CyclicDependencyError surface synchronously from the
   registration or compile step that detected them. The graph is left as it was
   before the offending edge or callback.

2. ChainExecutionError only aborts the current call(). The compiled order stays
   valid, so calling again after fixing the underlying failure is safe.

3. Retries are not built in. Wrap the callback itself if it needs one.
"""

from typing import Any


class HookchainError(Exception):
    """Base exception for all hookchain errors."""

    pass


class DuplicateHookError(HookchainError):
    """Raised when a second, different callback is bound to an existing hook."""

    def __init__(self, name: str, existing: Any = None, callback: Any = None) -> None:
        """
        Initialize DuplicateHookError.

        Args:
            name: Name of the hook that already has a callback.
            existing: Callback already bound to the hook.
            callback: Callback that was rejected.
        """
        super().__init__(f"duplicate hook: {name}")
        self.name = name
        self.existing = existing
        self.callback = callback


class CyclicDependencyError(HookchainError):
    """
    Raised when hook constraints contain a cycle.

    Example cycles:
    1. init before load, load before init
    2. a before b, b before c, c before a

    Batch chains detect this while compiling (no wave can be emitted while
    hooks remain). Reactive chains detect it when the closing edge is added.
    """

    def __init__(
        self,
        message: str,
        unresolved: list[str] | None = None,
        cycles: list[list[str]] | None = None,
    ) -> None:
        """
        Initialize CyclicDependencyError.

        Args:
            message: Error message.
            unresolved: Hooks whose constraints could not be satisfied.
            cycles: Detected cycles, each a list of hook names.
        """
        super().__init__(message)
        self.unresolved = unresolved or []
        self.cycles = cycles or []


class ChainExecutionError(HookchainError):
    """Raised when a hook callback fails during chain execution."""

    def __init__(self, node: str, cause: BaseException) -> None:
        """
        Initialize ChainExecutionError.

        Args:
            node: Name of the hook whose callback raised.
            cause: The exception raised by the callback.
        """
        super().__init__(f"hookchain calling error in '{node}': {cause}")
        self.node = node
        self.cause = cause


class ArityMismatchError(HookchainError):
    """Raised when callbacks or call arguments do not match the chain's arity."""

    def __init__(self, message: str, expected: int, actual: int | None = None) -> None:
        """
        Initialize ArityMismatchError.

        Args:
            message: Error message.
            expected: Number of positional arguments the chain passes.
            actual: Number of arguments supplied, when known.
        """
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ManifestError(HookchainError):
    """Raised when a hook manifest is invalid or references unknown callbacks."""

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.args[0]}"
        return str(self.args[0]) if self.args else "manifest error"
