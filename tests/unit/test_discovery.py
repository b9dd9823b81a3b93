"""Unit tests for decorator and manifest hook discovery."""

import json
import os.path

import pytest
from pydantic import ValidationError

from hookchain.chain import BatchHookchain, ExecutionStrategy, ReactiveHookchain
from hookchain.discovery import (
    DiscoveryContext,
    HookManifest,
    HookSpec,
    add_annotated_hooks,
    build_chain,
    get_hook_spec,
    hook,
    iter_annotated,
    load_manifest,
    parse_manifest,
    resolve_callback,
)
from hookchain.utils.exceptions import DuplicateHookError, ManifestError


class Startup:
    def __init__(self):
        self.calls = []

    @hook("init")
    def init(self):
        self.calls.append("init")

    @hook("load_mods", before=["init"], after=["start"])
    def load_mods(self):
        self.calls.append("load_mods")

    @hook("start")
    def start(self):
        self.calls.append("start")

    @hook("on_tick")
    def on_tick(self, tick):
        self.calls.append(f"tick {tick}")

    def not_a_hook(self):
        self.calls.append("not_a_hook")


class ExtendedStartup(Startup):
    @hook("extra", before=["start"])
    def extra(self):
        self.calls.append("extra")


class TestHookSpec:
    """Test HookSpec validation."""

    def test_single_name_accepted(self):
        spec = HookSpec(name=" load ", before="init", after=["start "])

        assert spec.name == "load"
        assert spec.before == ("init",)
        assert spec.after == ("start",)

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            HookSpec(name="  ")

    def test_empty_constraint_rejected(self):
        with pytest.raises(ValidationError):
            HookSpec(name="load", before=["init", ""])

    def test_self_constraint_rejected(self):
        with pytest.raises(ValidationError, match="relative to itself"):
            HookSpec(name="load", after=["load"])

    @pytest.mark.parametrize("path", ["json", ":dumps", "json:", "json.dumps"])
    def test_invalid_callback_path(self, path):
        with pytest.raises(ValidationError):
            HookSpec(name="load", callback=path)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            HookSpec(name="load", priority=3)

    def test_spec_is_frozen(self):
        spec = HookSpec(name="load")

        with pytest.raises(ValidationError):
            spec.name = "other"


class TestHookManifest:
    """Test HookManifest validation."""

    def test_defaults(self):
        manifest = HookManifest()

        assert manifest.strategy is None
        assert manifest.arity is None
        assert manifest.barriers == ()
        assert manifest.hooks == []

    def test_strategy_parsed(self):
        manifest = HookManifest(strategy="reactive", barriers="loaded")

        assert manifest.strategy is ExecutionStrategy.REACTIVE
        assert manifest.barriers == ("loaded",)

    def test_duplicate_hooks_rejected(self):
        with pytest.raises(ValidationError, match="more than once: load"):
            HookManifest(hooks=[{"name": "load"}, {"name": "load"}])

    def test_negative_arity_rejected(self):
        with pytest.raises(ValidationError):
            HookManifest(arity=-1)


class TestAnnotations:
    """Test @hook discovery."""

    def test_hook_attaches_spec(self):
        spec = get_hook_spec(Startup.load_mods)

        assert spec.name == "load_mods"
        assert spec.before == ("init",)
        assert spec.after == ("start",)

    def test_spec_found_through_bound_method(self):
        assert get_hook_spec(Startup().init).name == "init"

    def test_plain_function_has_no_spec(self):
        assert get_hook_spec(Startup.not_a_hook) is None

    def test_iter_annotated_in_definition_order(self):
        names = [spec.name for spec, _ in iter_annotated(Startup())]

        assert names == ["init", "load_mods", "start", "on_tick"]

    def test_iter_annotated_base_class_first(self):
        names = [spec.name for spec, _ in iter_annotated(ExtendedStartup())]

        assert names == ["init", "load_mods", "start", "on_tick", "extra"]

    def test_register_instance_skips_mismatched_arity(self):
        startup = Startup()
        chain = BatchHookchain(arity=0)

        registered = add_annotated_hooks(chain, startup)
        chain.call()

        assert registered == ["init", "load_mods", "start"]
        assert "on_tick" not in chain
        assert startup.calls == ["init", "load_mods", "start"]

    def test_one_object_feeds_several_chains(self):
        startup = Startup()
        loading = BatchHookchain(arity=0)
        ticking = BatchHookchain(arity=1)

        add_annotated_hooks(loading, startup)
        add_annotated_hooks(ticking, startup)
        ticking.call(7)

        assert ticking.order() == ["on_tick"]
        assert startup.calls == ["tick 7"]

    def test_registering_same_instance_twice_is_tolerated(self):
        startup = Startup()
        chain = BatchHookchain(arity=0)

        add_annotated_hooks(chain, startup)
        add_annotated_hooks(chain, startup)
        chain.call()

        assert startup.calls == ["init", "load_mods", "start"]

    def test_two_instances_collide(self):
        chain = BatchHookchain(arity=0)
        add_annotated_hooks(chain, Startup())

        with pytest.raises(DuplicateHookError):
            add_annotated_hooks(chain, Startup())

    def test_reactive_registration(self):
        startup = ExtendedStartup()
        chain = ReactiveHookchain(arity=0)

        add_annotated_hooks(chain, startup)
        chain.run()

        assert startup.calls == ["init", "load_mods", "start", "extra"]


class TestResolveCallback:
    """Test import-path callback resolution."""

    def test_module_attribute(self):
        assert resolve_callback("json:dumps") is json.dumps

    def test_nested_attribute(self):
        assert resolve_callback("os:path.join") is os.path.join

    def test_missing_module(self):
        with pytest.raises(ManifestError, match="cannot import module"):
            resolve_callback("hookchain_no_such_module:run")

    def test_missing_attribute(self):
        with pytest.raises(ManifestError, match="has no attribute"):
            resolve_callback("json:no_such_function")

    def test_not_callable(self):
        with pytest.raises(ManifestError, match="not callable"):
            resolve_callback("os:sep")


class TestManifestLoading:
    """Test manifest parsing and chain building."""

    def test_parse_requires_mapping(self):
        with pytest.raises(ManifestError, match="expected a mapping"):
            parse_manifest(["hooks"], source="inline")

    def test_parse_wraps_validation_errors(self):
        with pytest.raises(ManifestError) as exc_info:
            parse_manifest({"strategy": "parallel"}, source="inline")

        assert exc_info.value.source == "inline"
        assert str(exc_info.value).startswith("inline: invalid manifest")

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ManifestError, match="not found"):
            load_manifest(tmp_path / "missing.yaml")

    def test_load_invalid_yaml(self, write_manifest):
        path = write_manifest("hooks: [unclosed\n")

        with pytest.raises(ManifestError, match="invalid YAML"):
            load_manifest(path)

    def test_load_manifest(self, write_manifest):
        path = write_manifest(
            """
name: startup
strategy: reactive
arity: 0
barriers: [config_loaded]
hooks:
  - name: load_mods
    before: [config_loaded]
    callback: json:dumps
"""
        )

        manifest = load_manifest(path)

        assert manifest.name == "startup"
        assert manifest.strategy is ExecutionStrategy.REACTIVE
        assert manifest.hooks[0].callback == "json:dumps"

    def test_build_chain_with_resolver(self, call_log):
        manifest = parse_manifest(
            {
                "name": "startup",
                "hooks": [
                    {"name": "start", "callback": "app:start"},
                    {"name": "load", "after": ["start"], "callback": "app:load"},
                    {"name": "init", "after": "load", "callback": "app:init"},
                ],
            }
        )
        callbacks = {path: call_log.callback(path) for path in ["app:start", "app:load", "app:init"]}
        context = DiscoveryContext(resolver=callbacks.__getitem__)

        chain = build_chain(manifest, context)
        chain.run()

        assert isinstance(chain, BatchHookchain)
        assert chain.name == "startup"
        assert call_log.calls == ["app:init", "app:load", "app:start"]

    def test_build_chain_applies_defaults(self):
        manifest = parse_manifest({"barriers": ["ready"]})

        chain = build_chain(
            manifest,
            default_strategy=ExecutionStrategy.REACTIVE,
            default_arity=0,
        )

        assert isinstance(chain, ReactiveHookchain)
        assert chain.arity == 0
        assert chain.get("ready").is_barrier

    def test_manifest_overrides_defaults(self):
        manifest = parse_manifest({"strategy": "batch", "arity": 2})

        chain = build_chain(manifest, default_strategy="reactive", default_arity=0)

        assert isinstance(chain, BatchHookchain)
        assert chain.arity == 2

    def test_build_chain_scans_providers(self):
        startup = Startup()
        manifest = parse_manifest({"arity": 0, "barriers": ["start"]})

        chain = build_chain(manifest, DiscoveryContext(providers=[startup]))
        chain.run()

        assert startup.calls == ["init", "load_mods", "start"]

    def test_unresolvable_callback(self):
        manifest = parse_manifest(
            {"hooks": [{"name": "load", "callback": "hookchain_no_such_module:load"}]}
        )

        with pytest.raises(ManifestError):
            build_chain(manifest)
