"""
State transition engine.

Owns no state of its own: it reads the current SymbolState from the injected
store, applies the merge rules and commits the result synchronously, so
concurrent events are serialised by the event loop.
"""

from typing import Optional, Union

import structlog

from ..logging.config import get_state_logger, log_signal_transition
from ..utils.time import Clock, wall_clock_ms
from .families import RANGE_WINDOWS, ChannelFamily
from .machine import merge_range, merge_signal
from .models import EventTime, Polarity, Price, TransitionOutcome, TransitionResult
from .store import SignalStateStore

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)

REJECTED_UNKNOWN_SYMBOL = "unknown_symbol"
REJECTED_UNKNOWN_WINDOW = "unknown_range_window"


class TransitionEngine:
    """Applies signal and range events to the store."""

    def __init__(self, store: SignalStateStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or wall_clock_ms
        self.logger = logger

    def apply_signal(
        self,
        symbol: str,
        family: ChannelFamily,
        polarity: Union[Polarity, str],
        price: Price,
        time: EventTime,
    ) -> TransitionResult:
        """
        Apply one directional event.

        Returns an UPDATED result carrying the new record and committed
        state, IGNORED for a gating STOP with no prior GO, or REJECTED for a
        symbol outside the registry.
        """
        polarity = Polarity(polarity)

        if symbol not in self.store:
            log_signal_transition(
                state_logger, symbol, family.key_for(polarity),
                TransitionOutcome.REJECTED.value,
                context={"reason": REJECTED_UNKNOWN_SYMBOL},
            )
            return TransitionResult(
                outcome=TransitionOutcome.REJECTED,
                symbol=symbol,
                reason=REJECTED_UNKNOWN_SYMBOL,
            )

        merged = merge_signal(
            state=self.store.get(symbol),
            family=family,
            polarity=polarity,
            price=price,
            time=time,
            now=self.clock(),
        )

        if merged.outcome is not TransitionOutcome.UPDATED:
            log_signal_transition(
                state_logger, symbol, merged.channel_key, merged.outcome.value,
                context={"reason": merged.reason, "family": family.family_id},
            )
            return TransitionResult(
                outcome=merged.outcome,
                symbol=symbol,
                channel_key=merged.channel_key,
                reason=merged.reason,
            )

        self.store.replace(symbol, merged.state)

        log_signal_transition(
            state_logger, symbol, merged.channel_key, merged.outcome.value,
            repeat_count=merged.record.repeat_count,
            context={"family": family.family_id, "price": price},
        )

        return TransitionResult(
            outcome=TransitionOutcome.UPDATED,
            symbol=symbol,
            channel_key=merged.channel_key,
            record=merged.record,
            state=merged.state,
        )

    def apply_range(
        self,
        symbol: str,
        window: str,
        high: Price,
        low: Price,
        time: EventTime,
    ) -> TransitionResult:
        """Store a range window under its fixed key."""
        if symbol not in self.store:
            return TransitionResult(
                outcome=TransitionOutcome.REJECTED,
                symbol=symbol,
                reason=REJECTED_UNKNOWN_SYMBOL,
            )

        range_key = RANGE_WINDOWS.get(window)
        if range_key is None:
            return TransitionResult(
                outcome=TransitionOutcome.REJECTED,
                symbol=symbol,
                reason=REJECTED_UNKNOWN_WINDOW,
            )

        new_state, record = merge_range(
            self.store.get(symbol), range_key, high, low, time, now=self.clock()
        )
        self.store.replace(symbol, new_state)

        self.logger.info(
            "Range updated",
            symbol=symbol,
            range_key=range_key,
            high=high,
            low=low,
        )

        return TransitionResult(
            outcome=TransitionOutcome.UPDATED,
            symbol=symbol,
            channel_key=range_key,
            record=record,
            state=new_state,
        )
