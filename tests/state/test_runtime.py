"""Tests for runtime ordering of commit, broadcast and persistence."""

import asyncio
import sqlite3

from callboard_app.delivery.broadcaster import Broadcaster
from callboard_app.delivery.session import ViewerSession
from callboard_app.errors import PersistenceError
from callboard_app.persistence.state_gateway import StateGateway
from callboard_app.state.families import CALL1, CALL3
from callboard_app.state.models import PriceTick, TransitionOutcome
from callboard_app.state.runtime import SignalRuntime
from callboard_app.utils.time import epoch_seconds


class RecordingGateway:
    """Gateway double that records saves and can be told to fail."""

    def __init__(self, fail_save: bool = False, fail_load: bool = False, states=None):
        self.fail_save = fail_save
        self.fail_load = fail_load
        self.states = states or {}
        self.saved = []

    def save(self, symbol, state):
        if self.fail_save:
            raise PersistenceError("disk full", operation="save", target=symbol)
        self.saved.append((symbol, state))

    def load_all(self, registry):
        if self.fail_load:
            raise PersistenceError("store unavailable", operation="load_all")
        return self.states


class TestSignalRuntime:
    """Test SignalRuntime."""

    def make_runtime(self, store, engine, gateway=None):
        broadcaster = Broadcaster(store.snapshot)
        return SignalRuntime(store, engine, broadcaster, gateway), broadcaster

    def test_update_broadcasts_once_and_persists(self, store, engine, transport_factory, settle_tasks):
        gateway = RecordingGateway()
        runtime, broadcaster = self.make_runtime(store, engine, gateway)
        transport = transport_factory()

        async def scenario():
            await broadcaster.connect(ViewerSession(transport))
            result = await runtime.process_signal("AAA", CALL1, "buy", 100, "T1")
            await settle_tasks()
            return result

        result = asyncio.run(scenario())

        snapshots = transport.messages_of("snapshot")
        assert result.updated
        assert len(snapshots) == 2
        assert snapshots[0]["state"]["AAA"]["call1_buy"] is None
        assert snapshots[1]["state"]["AAA"]["call1_buy"]["price"] == 100
        assert gateway.saved == [("AAA", store.get("AAA"))]

    def test_ignored_event_neither_broadcasts_nor_persists(self, store, engine, transport_factory, settle_tasks):
        gateway = RecordingGateway()
        runtime, broadcaster = self.make_runtime(store, engine, gateway)
        transport = transport_factory()

        async def scenario():
            await broadcaster.connect(ViewerSession(transport))
            result = await runtime.process_signal("AAA", CALL3, "sell", 50, "T1")
            await settle_tasks()
            return result

        result = asyncio.run(scenario())

        assert result.outcome is TransitionOutcome.IGNORED
        assert len(transport.messages_of("snapshot")) == 1
        assert gateway.saved == []
        assert runtime.get_stats()["ignored"] == 1

    def test_persistence_failure_keeps_memory_and_broadcast(self, store, engine, transport_factory, settle_tasks):
        """A failed save is recorded; state and viewers are unaffected."""
        runtime, broadcaster = self.make_runtime(store, engine, RecordingGateway(fail_save=True))
        transport = transport_factory()

        async def scenario():
            await broadcaster.connect(ViewerSession(transport))
            await runtime.process_signal("AAA", CALL1, "buy", 100, "T1")
            await settle_tasks()

        asyncio.run(scenario())

        assert store.get("AAA").record("call1_buy").price == 100
        assert len(transport.messages_of("snapshot")) == 2
        assert len(runtime.persistence_failures) == 1
        assert runtime.persistence_failures[0].operation == "save"
        assert runtime.get_stats()["last_persistence_error"] == "disk full"

    def test_range_event_persisted(self, store, engine):
        gateway = RecordingGateway()
        runtime, _ = self.make_runtime(store, engine, gateway)

        result = asyncio.run(runtime.process_range("BBB", "15m", 10, 5, "T1"))

        assert result.updated
        assert [symbol for symbol, _ in gateway.saved] == ["BBB"]

    def test_rejected_event_counted(self, store, engine):
        runtime, _ = self.make_runtime(store, engine)

        result = asyncio.run(runtime.process_signal("ZZZ", CALL1, "buy", 1, "T1"))

        assert result.outcome is TransitionOutcome.REJECTED
        assert runtime.get_stats()["rejected"] == 1

    def test_runs_without_gateway(self, store, engine):
        runtime, _ = self.make_runtime(store, engine)

        result = asyncio.run(runtime.process_signal("AAA", CALL1, "buy", 1, "T1"))

        assert result.updated
        assert runtime.get_stats()["persisted"] == 0

    def test_price_tick_bypasses_store(self, store, engine, transport_factory, settle_tasks):
        gateway = RecordingGateway()
        runtime, broadcaster = self.make_runtime(store, engine, gateway)
        transport = transport_factory()
        before = store.snapshot()

        async def scenario():
            await broadcaster.connect(ViewerSession(transport))
            queued = runtime.process_price_tick(PriceTick("AAA", 100, 101, 1.0, "T1"))
            await settle_tasks()
            return queued

        queued = asyncio.run(scenario())

        assert queued == 1
        assert transport.messages_of("price_tick")[0]["currentPrice"] == 101
        assert dict(store.snapshot().states) == dict(before.states)
        assert gateway.saved == []


class TestReload:
    """Test SignalRuntime.reload."""

    def test_reload_merges_persisted_states(self, store, engine):
        previous = asyncio.run(self._state_after_buy(store, engine))
        store.reset()
        runtime = SignalRuntime(store, engine, Broadcaster(store.snapshot), RecordingGateway(states={"AAA": previous}))

        restored = runtime.reload()

        assert restored == 1
        assert store.get("AAA").record("call1_buy").price == 100

    def test_reload_failure_starts_empty(self, store, engine):
        runtime = SignalRuntime(store, engine, Broadcaster(store.snapshot), RecordingGateway(fail_load=True))
        asyncio.run(runtime.process_signal("AAA", CALL1, "buy", 100, "T1"))

        restored = runtime.reload()

        assert restored == 0
        assert store.get("AAA").record("call1_buy") is None
        assert len(runtime.persistence_failures) == 1

    def test_reload_skips_corrupt_rows(self, store, engine, tmp_path):
        db_path = str(tmp_path / "board.db")
        gateway = StateGateway(db_path)
        gateway.save("AAA", asyncio.run(self._state_after_buy(store, engine)))
        with sqlite3.connect(db_path) as conn:
            conn.executemany(
                "INSERT INTO symbol_states VALUES (?, ?, 'x', ?)",
                [
                    ("BBB", "[1, 2]", epoch_seconds() + 3600),
                    ("CCC", '{"call1_buy": "oops"}', epoch_seconds() + 3600),
                ],
            )
            conn.commit()
        runtime = SignalRuntime(store, engine, Broadcaster(store.snapshot), gateway)

        restored = runtime.reload()

        assert restored == 1
        assert store.get("AAA").record("call1_buy").price == 100
        assert store.get("BBB").record("call1_buy") is None

    @staticmethod
    async def _state_after_buy(store, engine):
        runtime = SignalRuntime(store, engine, Broadcaster(store.snapshot))
        result = await runtime.process_signal("AAA", CALL1, "buy", 100, "T1")
        return result.state
