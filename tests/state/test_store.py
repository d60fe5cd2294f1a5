"""Tests for the in-memory signal state store."""

import pytest

from callboard_app.state.families import CALL1
from callboard_app.state.machine import merge_signal
from callboard_app.state.models import Polarity
from callboard_app.state.store import SignalStateStore, empty_symbol_state


class TestSignalStateStore:
    """Test SignalStateStore."""

    def test_initialised_for_every_symbol(self, store, registry):
        assert list(store) == list(registry)
        assert len(store) == 3
        assert store.get("AAA") == empty_symbol_state()

    def test_get_unknown_symbol(self, store):
        with pytest.raises(KeyError):
            store.get("ZZZ")

    def test_replace_unknown_symbol(self, store):
        with pytest.raises(KeyError):
            store.replace("ZZZ", empty_symbol_state())

    def test_load_skips_untracked(self, store):
        state = merge_signal(empty_symbol_state(), CALL1, Polarity.BUY, 1, "t", 1).state

        loaded = store.load({"AAA": state, "RETIRED": state})

        assert loaded == 1
        assert store.get("AAA") is state
        assert "RETIRED" not in store

    def test_reset(self, store):
        state = merge_signal(empty_symbol_state(), CALL1, Polarity.BUY, 1, "t", 1).state
        store.replace("AAA", state)

        store.reset()

        assert store.get("AAA") == empty_symbol_state()

    def test_snapshot_is_isolated_from_later_commits(self, store):
        """A snapshot taken before a commit does not see it."""
        snapshot = store.snapshot()
        state = merge_signal(empty_symbol_state(), CALL1, Polarity.BUY, 1, "t", 1).state

        store.replace("AAA", state)

        assert snapshot.states["AAA"].record("call1_buy") is None
        assert store.snapshot().states["AAA"].record("call1_buy") is not None

    def test_snapshot_order_and_groups(self, registry):
        store = SignalStateStore(registry)

        snapshot = store.snapshot()

        assert list(snapshot.states) == ["AAA", "BBB", "CCC"]
        assert snapshot.display_group_a == ("AAA", "BBB")
        assert snapshot.display_group_b == ("CCC",)
        with pytest.raises(TypeError):
            snapshot.states["AAA"] = empty_symbol_state()
