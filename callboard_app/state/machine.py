"""
Core signal merge rules.

Pure functions: given the current SymbolState of a symbol and an incoming
event, compute the new state. No I/O and no clock access; ``now`` is passed
in by the engine so the rules are deterministic under test.
"""

from dataclasses import dataclass
from typing import Optional

from .families import ChannelFamily
from .models import (
    ActiveChannel,
    EventTime,
    Polarity,
    Price,
    RangeRecord,
    SignalRecord,
    SymbolState,
    TransitionOutcome,
)

IGNORED_STOP_WITHOUT_GO = "stop_without_go"


@dataclass(frozen=True)
class MergeResult:
    """Result of merging one event into a SymbolState."""

    outcome: TransitionOutcome
    channel_key: str
    state: SymbolState
    record: Optional[SignalRecord] = None
    reason: Optional[str] = None


def gate_accepts(family: ChannelFamily, polarity: Polarity, current: Optional[SignalRecord]) -> bool:
    """
    Whether a gating family accepts an event.

    GO is always accepted. STOP is accepted only while the key holds a GO
    record; a STOP with nothing to stop is a no-op.
    """
    if not family.gating or polarity is Polarity.BUY:
        return True
    return current is not None and current.polarity is Polarity.BUY


def merge_signal(
    state: SymbolState,
    family: ChannelFamily,
    polarity: Polarity,
    price: Price,
    time: EventTime,
    now: int,
) -> MergeResult:
    """
    Merge a directional signal event into a symbol's state.

    Args:
        state: Current state of the symbol
        family: Channel family the indicator maps to
        polarity: Event direction (GO/STOP for gating families)
        price: Indicator-supplied price, stored as is
        time: Indicator-supplied event time, stored as is
        now: Wall-clock milliseconds of this mutation

    Returns:
        MergeResult; ``state`` is unchanged unless the outcome is UPDATED
    """
    key = family.key_for(polarity)
    current = state.record(key)

    if not gate_accepts(family, polarity, current):
        return MergeResult(
            outcome=TransitionOutcome.IGNORED,
            channel_key=key,
            state=state,
            reason=IGNORED_STOP_WITHOUT_GO,
        )

    arriving = ActiveChannel(key=key, polarity=polarity)
    updates: dict[str, Optional[SignalRecord]] = {}

    if state.active_channel(family.family_id) == arriving and current is not None:
        repeat_count = current.repeat_count + 1
        first_seen_at = current.first_seen_at
    else:
        repeat_count = 1
        first_seen_at = now
        sibling_key = family.sibling_of(key)
        if sibling_key is not None:
            sibling = state.record(sibling_key)
            if sibling is not None:
                updates[sibling_key] = sibling.deactivated()

    record = SignalRecord(
        price=price,
        time=time,
        first_seen_at=first_seen_at,
        observed_at=now,
        repeat_count=repeat_count,
        active=True,
        polarity=polarity if family.gating else None,
    )
    updates[key] = record

    return MergeResult(
        outcome=TransitionOutcome.UPDATED,
        channel_key=key,
        state=state.with_records(updates, family_id=family.family_id, active=arriving),
        record=record,
    )


def merge_range(
    state: SymbolState,
    range_key: str,
    high: Price,
    low: Price,
    time: EventTime,
    now: int,
) -> tuple[SymbolState, RangeRecord]:
    """Store a range window; ranges carry no counting logic."""
    record = RangeRecord(high=high, low=low, time=time, observed_at=now)
    return state.with_range(range_key, record), record
