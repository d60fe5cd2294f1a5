"""Tests for the pure signal merge rules."""

from callboard_app.state.families import CALL1, CALL3
from callboard_app.state.machine import (
    IGNORED_STOP_WITHOUT_GO,
    gate_accepts,
    merge_range,
    merge_signal,
)
from callboard_app.state.models import ActiveChannel, Polarity, SignalRecord, TransitionOutcome
from callboard_app.state.store import empty_symbol_state


def apply(state, family, polarity, price, now, time=None):
    return merge_signal(state, family, polarity, price, time if time is not None else f"t{now}", now)


class TestRepeatCounting:
    """Repeat runs on the same channel."""

    def test_first_event_starts_run(self):
        result = apply(empty_symbol_state(), CALL1, Polarity.BUY, 100, now=10)

        assert result.outcome is TransitionOutcome.UPDATED
        assert result.channel_key == "call1_buy"
        assert result.record.repeat_count == 1
        assert result.record.first_seen_at == 10
        assert result.record.observed_at == 10
        assert result.state.active_channel("call1") == ActiveChannel("call1_buy", Polarity.BUY)

    def test_repeat_increments_and_keeps_first_seen(self):
        """Count goes up by one per event; first_seen_at stays at the run start."""
        state = empty_symbol_state()
        for i, now in enumerate((10, 20, 30, 40), start=1):
            result = apply(state, CALL1, Polarity.BUY, 100 + i, now=now)
            state = result.state

            assert result.record.repeat_count == i
            assert result.record.first_seen_at == 10
            assert result.record.observed_at == now
            assert result.record.price == 100 + i

    def test_buy_then_buy_scenario(self):
        state = apply(empty_symbol_state(), CALL1, Polarity.BUY, 100, now=10).state
        state = apply(state, CALL1, Polarity.BUY, 101, now=20).state

        record = state.record("call1_buy")
        assert record.price == 101
        assert record.repeat_count == 2
        assert record.active is True
        assert record.first_seen_at == 10


class TestSiblingDeactivation:
    """Direction flips within a polar family."""

    def test_flip_deactivates_sibling(self):
        """Sibling keeps price and time, only active changes."""
        state = apply(empty_symbol_state(), CALL1, Polarity.BUY, 100, now=10, time="T1").state
        state = apply(state, CALL1, Polarity.SELL, 95, now=20, time="T2").state

        sell = state.record("call1_sell")
        buy = state.record("call1_buy")
        assert sell.active is True
        assert sell.repeat_count == 1
        assert sell.first_seen_at == 20
        assert buy.active is False
        assert buy.price == 100
        assert buy.time == "T1"
        assert state.active_channel("call1") == ActiveChannel("call1_sell", Polarity.SELL)

    def test_flip_back_resets_count(self):
        state = empty_symbol_state()
        for now, polarity in ((10, Polarity.BUY), (20, Polarity.BUY), (30, Polarity.SELL), (40, Polarity.BUY)):
            state = apply(state, CALL1, polarity, 100, now=now).state

        buy = state.record("call1_buy")
        assert buy.repeat_count == 1
        assert buy.first_seen_at == 40
        assert state.record("call1_sell").active is False

    def test_flip_without_sibling_record(self):
        state = apply(empty_symbol_state(), CALL1, Polarity.SELL, 95, now=10).state

        assert state.record("call1_buy") is None
        assert state.record("call1_sell").active is True

    def test_other_families_untouched(self):
        state = apply(empty_symbol_state(), CALL1, Polarity.BUY, 100, now=10).state
        state = apply(state, CALL3, Polarity.BUY, 50, now=20).state

        assert state.record("call1_buy").active is True
        assert state.active_channel("call1") == ActiveChannel("call1_buy", Polarity.BUY)


class TestGating:
    """GO/STOP semantics of single-key families."""

    def test_stop_without_go_is_noop(self):
        state = empty_symbol_state()

        result = apply(state, CALL3, Polarity.SELL, 50, now=10)

        assert result.outcome is TransitionOutcome.IGNORED
        assert result.reason == IGNORED_STOP_WITHOUT_GO
        assert result.state is state
        assert result.state.record("call3_go") is None
        assert result.state.active_channel("call3") is None

    def test_go_then_stop_recorded_sequentially(self):
        state = apply(empty_symbol_state(), CALL3, Polarity.BUY, 50, now=10).state
        result = apply(state, CALL3, Polarity.SELL, 48, now=20)

        record = result.state.record("call3_go")
        assert result.outcome is TransitionOutcome.UPDATED
        assert record.polarity is Polarity.SELL
        assert record.active is True
        assert record.repeat_count == 1
        assert record.first_seen_at == 20
        assert record.price == 48

    def test_repeated_go_counts(self):
        state = apply(empty_symbol_state(), CALL3, Polarity.BUY, 50, now=10).state
        state = apply(state, CALL3, Polarity.BUY, 51, now=20).state

        record = state.record("call3_go")
        assert record.repeat_count == 2
        assert record.first_seen_at == 10
        assert record.polarity is Polarity.BUY

    def test_second_stop_ignored(self):
        state = apply(empty_symbol_state(), CALL3, Polarity.BUY, 50, now=10).state
        state = apply(state, CALL3, Polarity.SELL, 48, now=20).state

        result = apply(state, CALL3, Polarity.SELL, 47, now=30)

        assert result.outcome is TransitionOutcome.IGNORED
        assert result.state.record("call3_go").price == 48

    def test_gate_accepts(self):
        go = SignalRecord(price=1, time=1, first_seen_at=1, observed_at=1, polarity=Polarity.BUY)
        stop = SignalRecord(price=1, time=1, first_seen_at=1, observed_at=1, polarity=Polarity.SELL)

        assert gate_accepts(CALL3, Polarity.BUY, None)
        assert gate_accepts(CALL3, Polarity.SELL, go)
        assert not gate_accepts(CALL3, Polarity.SELL, stop)
        assert not gate_accepts(CALL3, Polarity.SELL, None)
        assert gate_accepts(CALL1, Polarity.SELL, None)


class TestMergeRange:
    """Range windows."""

    def test_range_overwrites(self):
        state, first = merge_range(empty_symbol_state(), "orb_15m", 110, 90, "t1", now=10)
        state, second = merge_range(state, "orb_15m", 120, 95, "t2", now=20)

        assert state.range_record("orb_15m") == second
        assert second.high == 120
        assert second.observed_at == 20
        assert first.high == 110
