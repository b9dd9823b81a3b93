"""Hook discovery adapters: decorators and declarative manifests."""

from .annotations import add_annotated_hooks, add_hook, get_hook_spec, hook, iter_annotated
from .manifest import (
    DiscoveryContext,
    build_chain,
    load_manifest,
    parse_manifest,
    resolve_callback,
)
from .models import HookManifest, HookSpec

__all__ = [
    "HookSpec",
    "HookManifest",
    "hook",
    "get_hook_spec",
    "iter_annotated",
    "add_hook",
    "add_annotated_hooks",
    "DiscoveryContext",
    "resolve_callback",
    "parse_manifest",
    "load_manifest",
    "build_chain",
]
