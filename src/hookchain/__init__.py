"""hookchain - dependency-ordered callback scheduler."""

from .bus import BusEvent, EventBus, LoadingBus
from .chain import ROOT, BatchHookchain, ExecutionStrategy, Hookchain, ReactiveHookchain, create_hookchain
from .config import HookchainConfig
from .discovery import DiscoveryContext, HookManifest, HookSpec, add_annotated_hooks, build_chain, hook
from .stage import Event, Stage, StageTrigger
from .utils.exceptions import (
    ArityMismatchError,
    ChainExecutionError,
    CyclicDependencyError,
    DuplicateHookError,
    HookchainError,
    ManifestError,
)

__version__ = "0.1.0"
__all__ = [
    "ROOT",
    "Hookchain",
    "BatchHookchain",
    "ReactiveHookchain",
    "ExecutionStrategy",
    "create_hookchain",
    "hook",
    "add_annotated_hooks",
    "HookSpec",
    "HookManifest",
    "DiscoveryContext",
    "build_chain",
    "LoadingBus",
    "EventBus",
    "BusEvent",
    "Event",
    "Stage",
    "StageTrigger",
    "HookchainConfig",
    "HookchainError",
    "DuplicateHookError",
    "CyclicDependencyError",
    "ChainExecutionError",
    "ArityMismatchError",
    "ManifestError",
]
