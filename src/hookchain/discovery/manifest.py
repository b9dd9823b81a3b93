"""Manifest Loader - build hookchains from declarative YAML files.

Manifest Format:
---------------
    name: startup              # optional label used in logs
    strategy: batch            # or "reactive"
    arity: 0                   # positional arguments passed to every callback
    barriers: [config_loaded]  # hooks without callbacks (external signals)
    hooks:
      - name: read_config
        callback: myapp.config:read_config
      - name: load_mods
        before: [read_config]  # hooks that must run before load_mods
        after: [start_game]    # hooks that must run after load_mods
        callback: myapp.mods:load_mods

Callbacks are resolved through ``DiscoveryContext.resolver`` (import paths by
default). Objects listed in ``DiscoveryContext.providers`` are additionally
scanned for ``@hook`` members. The context is passed in explicitly; nothing is
looked up from process-wide registries.
"""

import importlib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from ..chain import create_hookchain
from ..chain.base import ExecutionStrategy, Hookchain
from ..observability.metrics import MetricsCollector
from ..utils.exceptions import ManifestError
from .annotations import add_annotated_hooks, add_hook
from .models import HookManifest

logger = structlog.get_logger(__name__)


def resolve_callback(path: str) -> Callable[..., Any]:
    """
    Import a callback from a "package.module:attribute" path.

    Nested attributes are allowed ("module:Class.method").

    Raises:
        ManifestError: If the module or attribute cannot be found, or the
            target is not callable
    """
    module_name, _, attribute_path = path.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ManifestError(f"cannot import module '{module_name}': {e}") from e

    for attribute in attribute_path.split("."):
        try:
            target = getattr(target, attribute)
        except AttributeError as e:
            raise ManifestError(f"'{module_name}' has no attribute '{attribute_path}'") from e

    if not callable(target):
        raise ManifestError(f"callback '{path}' is not callable")

    return target


@dataclass
class DiscoveryContext:
    """
    Explicit inputs for hook discovery.

    Attributes:
        providers: Objects (instances, classes or modules) scanned for @hook members
        resolver: Turns a manifest callback path into a callable
    """

    providers: list[Any] = field(default_factory=list)
    resolver: Callable[[str], Callable[..., Any]] = resolve_callback


def parse_manifest(data: Any, source: str | None = None) -> HookManifest:
    """
    Validate already-parsed manifest data.

    Raises:
        ManifestError: If the data is not a valid manifest
    """
    if not isinstance(data, dict):
        raise ManifestError(
            f"expected a mapping at the top level, got {type(data).__name__}",
            source=source,
        )
    try:
        return HookManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestError(f"invalid manifest: {e}", source=source) from e


def load_manifest(path: Path) -> HookManifest:
    """
    Load and validate a manifest from a YAML file.

    Args:
        path: Path to the manifest

    Returns:
        Validated manifest

    Raises:
        ManifestError: If the file is missing, is not valid YAML, or does not
            describe a valid manifest
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ManifestError("manifest file not found", source=str(path)) from e
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid YAML: {e}", source=str(path)) from e

    manifest = parse_manifest(data, source=str(path))
    logger.debug(
        "Loaded hook manifest",
        path=str(path),
        strategy=manifest.strategy.value if manifest.strategy else None,
        hooks=len(manifest.hooks),
    )
    return manifest


def build_chain(
    manifest: HookManifest,
    context: DiscoveryContext | None = None,
    metrics: MetricsCollector | None = None,
    default_strategy: ExecutionStrategy = ExecutionStrategy.BATCH,
    default_arity: int | None = None,
) -> Hookchain:
    """
    Create a chain and register everything the manifest and context declare.

    Args:
        manifest: Validated manifest
        context: Providers and callback resolver (defaults to import paths only)
        metrics: Optional metrics collector for the new chain
        default_strategy: Strategy used when the manifest does not name one
        default_arity: Arity used when the manifest does not set one

    Returns:
        Populated hookchain

    Raises:
        ManifestError: If a callback cannot be resolved
        DuplicateHookError: If a provider redefines a manifest hook
        CyclicDependencyError: If a reactive chain receives a cyclic constraint
    """
    context = context or DiscoveryContext()
    chain = create_hookchain(
        manifest.strategy or default_strategy,
        arity=manifest.arity if manifest.arity is not None else default_arity,
        metrics=metrics,
        name=manifest.name,
    )

    for barrier in manifest.barriers:
        chain.add(barrier)

    for spec in manifest.hooks:
        callback = context.resolver(spec.callback) if spec.callback else None
        add_hook(chain, spec, callback)

    for provider in context.providers:
        add_annotated_hooks(chain, provider)

    logger.info(
        "Built hookchain from manifest",
        chain=chain.name,
        strategy=chain.strategy.value,
        hooks=len(chain),
    )
    return chain
