"""
Runtime coordination of engine, persistence and broadcast.

Ordering per mutation: the engine commits to the store synchronously, the
snapshot is taken and queued for every viewer, and only then is the
persistence write awaited. A slow or failing store therefore never delays
what viewers see and never rolls back memory.
"""

import asyncio
from collections import deque
from typing import Any, Optional, Union

import structlog

from ..delivery.broadcaster import Broadcaster
from ..errors import PersistenceError
from ..persistence.state_gateway import StateGateway
from .engine import TransitionEngine
from .families import ChannelFamily
from .models import (
    EventTime,
    Polarity,
    Price,
    PriceTick,
    SymbolState,
    TransitionOutcome,
    TransitionResult,
)
from .store import SignalStateStore

logger = structlog.get_logger(__name__)

MAX_RECORDED_FAILURES = 100


class SignalRuntime:
    """Processes ingress events end to end."""

    def __init__(
        self,
        store: SignalStateStore,
        engine: TransitionEngine,
        broadcaster: Broadcaster,
        gateway: Optional[StateGateway] = None,
    ):
        self.store = store
        self.engine = engine
        self.broadcaster = broadcaster
        self.gateway = gateway
        self.logger = logger

        # Observable error channel for persistence faults
        self.persistence_failures: deque[PersistenceError] = deque(maxlen=MAX_RECORDED_FAILURES)
        self._persist_lock = asyncio.Lock()
        self._updated_count = 0
        self._ignored_count = 0
        self._rejected_count = 0
        self._persisted_count = 0

    def reload(self) -> int:
        """
        Reset the store and merge persisted state over it.

        A load failure leaves every symbol empty; the process keeps running.
        Returns the number of symbols restored.
        """
        self.store.reset()
        if self.gateway is None:
            return 0

        try:
            states = self.gateway.load_all(self.store.registry)
        except PersistenceError as e:
            self._record_failure(e)
            self.logger.error("State reload failed, starting empty", error=str(e))
            return 0

        loaded = self.store.load(states)
        self.logger.info("State reloaded", symbols=loaded)
        return loaded

    async def process_signal(
        self,
        symbol: str,
        family: ChannelFamily,
        polarity: Union[Polarity, str],
        price: Price,
        time: EventTime,
    ) -> TransitionResult:
        """Apply a signal event, then broadcast and persist on change."""
        result = self.engine.apply_signal(symbol, family, polarity, price, time)
        await self._publish(result)
        return result

    async def process_range(
        self,
        symbol: str,
        window: str,
        high: Price,
        low: Price,
        time: EventTime,
    ) -> TransitionResult:
        """Apply a range event, then broadcast and persist on change."""
        result = self.engine.apply_range(symbol, window, high, low, time)
        await self._publish(result)
        return result

    def process_price_tick(self, tick: PriceTick) -> int:
        """Forward a price tick to viewers; ticks bypass the engine and the store."""
        return self.broadcaster.broadcast_price_tick(tick)

    async def _publish(self, result: TransitionResult) -> None:
        if not result.updated:
            if result.outcome is TransitionOutcome.IGNORED:
                self._ignored_count += 1
            else:
                self._rejected_count += 1
            return

        self._updated_count += 1
        self.broadcaster.broadcast_state(self.store.snapshot())
        await self._persist(result.symbol, result.state)

    async def _persist(self, symbol: str, state: SymbolState) -> None:
        if self.gateway is None:
            return

        # Writes are serialised so rows land in commit order
        async with self._persist_lock:
            try:
                await asyncio.to_thread(self.gateway.save, symbol, state)
                self._persisted_count += 1
            except PersistenceError as e:
                self._record_failure(e)
                self.logger.error(
                    "Failed to persist state",
                    symbol=symbol,
                    error=str(e),
                )

    def _record_failure(self, error: PersistenceError) -> None:
        self.persistence_failures.append(error)

    def get_stats(self) -> dict[str, Any]:
        """Get runtime statistics."""
        last_failure = self.persistence_failures[-1] if self.persistence_failures else None
        return {
            "symbols": len(self.store),
            "updated": self._updated_count,
            "ignored": self._ignored_count,
            "rejected": self._rejected_count,
            "persisted": self._persisted_count,
            "persistence_failures": len(self.persistence_failures),
            "last_persistence_error": str(last_failure) if last_failure else None,
        }
