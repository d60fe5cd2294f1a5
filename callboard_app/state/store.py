"""Process-wide signal state store."""

from types import MappingProxyType
from typing import Iterator, Mapping

import structlog

from ..registry import SymbolRegistry
from .families import FAMILIES, all_channel_keys, all_range_keys
from .models import StateSnapshot, SymbolState

logger = structlog.get_logger(__name__)


def empty_symbol_state() -> SymbolState:
    """Fresh state with every known channel, range and family pointer unset."""
    return SymbolState.empty(
        channel_keys=all_channel_keys(),
        range_keys=all_range_keys(),
        family_ids=tuple(family.family_id for family in FAMILIES),
    )


class SignalStateStore:
    """
    Sole in-memory owner of per-symbol state.

    Holds exactly one SymbolState per registered symbol from construction on.
    States are immutable values, so replacing one never disturbs a snapshot
    already handed to viewers.
    """

    def __init__(self, registry: SymbolRegistry):
        self.registry = registry
        self.logger = logger
        self._states: dict[str, SymbolState] = {}
        self.reset()

    def reset(self) -> None:
        """Reinitialise every symbol to the empty state."""
        blank = empty_symbol_state()
        self._states = {symbol: blank for symbol in self.registry}

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._states

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def __len__(self) -> int:
        return len(self._states)

    def get(self, symbol: str) -> SymbolState:
        """Current state of a registered symbol."""
        try:
            return self._states[symbol]
        except KeyError:
            raise KeyError(f"Symbol is not tracked: {symbol}") from None

    def replace(self, symbol: str, state: SymbolState) -> None:
        """Commit a new state for a registered symbol."""
        if symbol not in self._states:
            raise KeyError(f"Symbol is not tracked: {symbol}")
        self._states[symbol] = state

    def load(self, states: Mapping[str, SymbolState]) -> int:
        """
        Replace states for the registered symbols found in ``states``.

        Unregistered symbols are ignored. Returns the number loaded.
        """
        loaded = 0
        for symbol, state in states.items():
            if symbol not in self._states:
                self.logger.debug("Skipping state for untracked symbol", symbol=symbol)
                continue
            self._states[symbol] = state
            loaded += 1
        return loaded

    def snapshot(self) -> StateSnapshot:
        """Immutable view of all current states in registry order."""
        return StateSnapshot(
            states=MappingProxyType({symbol: self._states[symbol] for symbol in self.registry}),
            display_group_a=self.registry.display_group_a,
            display_group_b=self.registry.display_group_b,
        )
