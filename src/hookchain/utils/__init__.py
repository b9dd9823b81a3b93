"""Utility functions and exceptions."""

from .exceptions import (
    ArityMismatchError,
    ChainExecutionError,
    CyclicDependencyError,
    DuplicateHookError,
    HookchainError,
    ManifestError,
)
from .locking import new_lock, synchronized

__all__ = [
    "HookchainError",
    "DuplicateHookError",
    "CyclicDependencyError",
    "ChainExecutionError",
    "ArityMismatchError",
    "ManifestError",
    "new_lock",
    "synchronized",
]
