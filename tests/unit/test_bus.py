"""Unit tests for LoadingBus and EventBus."""

import pytest

from hookchain.bus import BusEvent, EventBus, LoadingBus
from hookchain.discovery import hook
from hookchain.utils.exceptions import ChainExecutionError


class ClientStarted(BusEvent):
    def __init__(self, player: str) -> None:
        self.player = player


class ClientStopped(BusEvent):
    pass


class ModLoader:
    def __init__(self):
        self.calls = []

    @hook("read_config")
    def read_config(self):
        self.calls.append("read_config")

    @hook("load_mods", before=["read_config", "assets_loaded"])
    def load_mods(self):
        self.calls.append("load_mods")

    @hook("start_game", before=["load_mods"])
    def start_game(self):
        self.calls.append("start_game")


class Greeter:
    def __init__(self):
        self.calls = []

    @hook("greet")
    def greet(self, event: ClientStarted):
        self.calls.append(f"hello {event.player}")

    @hook("log_join", after=["greet"])
    def log_join(self, event: ClientStarted):
        self.calls.append(f"joined {event.player}")

    @hook("farewell")
    def farewell(self, event: ClientStopped):
        self.calls.append("bye")

    @hook("untyped")
    def untyped(self, event):
        self.calls.append("untyped")

    @hook("generic")
    def generic(self, event: BusEvent):
        self.calls.append("generic")


class TestLoadingBus:
    """Test mark-driven staged loading."""

    def test_start_runs_until_mark(self):
        loader = ModLoader()
        bus = LoadingBus()
        bus.register_hook_name("assets_loaded")
        bus.register(loader)

        bus.start()

        assert loader.calls == ["read_config"]
        assert not bus.is_done()

        bus.call("assets_loaded")

        assert loader.calls == ["read_config", "load_mods", "start_game"]
        assert bus.has_run("start_game")
        assert bus.is_done()

    def test_mark_reached_before_start(self):
        loader = ModLoader()
        bus = LoadingBus()
        bus.register(loader)

        bus.call("assets_loaded")
        assert loader.calls == []

        bus.start()
        assert loader.calls == ["read_config", "load_mods", "start_game"]

    def test_failing_hook_propagates(self):
        class Broken:
            @hook("broken")
            def broken(self):
                raise RuntimeError("missing asset")

        bus = LoadingBus()
        bus.register(Broken())

        with pytest.raises(ChainExecutionError, match="missing asset"):
            bus.start()


class TestEventBus:
    """Test per-event-class dispatch."""

    def test_post_runs_hooks_in_order(self):
        greeter = Greeter()
        bus = EventBus()
        bus.register(greeter)

        bus.post(ClientStarted("steve"))

        assert greeter.calls == ["joined steve", "hello steve"]

    def test_hooks_keyed_by_exact_class(self):
        greeter = Greeter()
        bus = EventBus()
        bus.register(greeter)

        bus.post(ClientStopped())

        assert greeter.calls == ["bye"]

    def test_register_skips_untyped_and_base_event_hooks(self):
        bus = EventBus()

        registered = bus.register(Greeter())

        assert registered == ["greet", "log_join", "farewell"]
        assert bus.chain_for(ClientStarted).order() == ["log_join", "greet"]
        assert bus.chain_for(BusEvent) is None

    def test_post_without_hooks_is_noop(self):
        bus = EventBus()

        bus.post(ClientStarted("alex"))

        assert bus.chain_for(ClientStarted) is None

    def test_chain_per_event_class(self):
        bus = EventBus()
        bus.register(Greeter())

        started = bus.chain_for(ClientStarted)
        stopped = bus.chain_for(ClientStopped)

        assert started is not stopped
        assert started.name == "ClientStarted"
        assert started.arity == 1
