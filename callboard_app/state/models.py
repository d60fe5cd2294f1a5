"""
Signal state data models.

Records are immutable; a mutation produces a new SymbolState that replaces
the old one in the store. Snapshots handed to viewers can therefore be
shared without copying.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

# Indicator-supplied values are stored exactly as received.
EventTime = Union[str, int, float]
Price = Union[int, float]


class Polarity(str, Enum):
    """Direction of an indicator event. For gating channels BUY is GO, SELL is STOP."""
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "Polarity":
        return Polarity.SELL if self is Polarity.BUY else Polarity.BUY


class TransitionOutcome(str, Enum):
    """Result classification of an engine call."""
    UPDATED = "updated"
    IGNORED = "ignored"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SignalRecord:
    """State of one channel after its latest event."""

    price: Price
    time: EventTime
    first_seen_at: int                       # Wall-clock ms when the current run started
    observed_at: int                         # Wall-clock ms of the last mutation
    repeat_count: int = 1
    active: bool = True
    polarity: Optional[Polarity] = None      # Gating channels only

    def deactivated(self) -> "SignalRecord":
        """Same record with active cleared; price and time untouched."""
        return replace(self, active=False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "price": self.price,
            "time": self.time,
            "firstSeenAt": self.first_seen_at,
            "observedAt": self.observed_at,
            "repeatCount": self.repeat_count,
            "active": self.active,
        }
        if self.polarity is not None:
            data["polarity"] = self.polarity.value
        return data


@dataclass(frozen=True)
class RangeRecord:
    """High/low range captured for one window."""

    high: Price
    low: Price
    time: EventTime
    observed_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "high": self.high,
            "low": self.low,
            "time": self.time,
            "observedAt": self.observed_at,
        }


@dataclass(frozen=True)
class ActiveChannel:
    """Last-active channel pointer of one family."""

    key: str
    polarity: Polarity

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "polarity": self.polarity.value}


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class SymbolState:
    """All channel, range and last-active data for one symbol."""

    channels: Mapping[str, Optional[SignalRecord]] = field(default_factory=dict)
    ranges: Mapping[str, Optional[RangeRecord]] = field(default_factory=dict)
    last_active: Mapping[str, Optional[ActiveChannel]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "channels", _frozen(self.channels))
        object.__setattr__(self, "ranges", _frozen(self.ranges))
        object.__setattr__(self, "last_active", _frozen(self.last_active))

    @classmethod
    def empty(
        cls,
        channel_keys: tuple[str, ...],
        range_keys: tuple[str, ...],
        family_ids: tuple[str, ...],
    ) -> "SymbolState":
        """State with every known channel, range and pointer set to None."""
        return cls(
            channels={key: None for key in channel_keys},
            ranges={key: None for key in range_keys},
            last_active={family_id: None for family_id in family_ids},
        )

    def record(self, key: str) -> Optional[SignalRecord]:
        """Current record of a channel; None means no prior signal."""
        if key not in self.channels:
            raise KeyError(f"Unknown channel key: {key}")
        return self.channels[key]

    def range_record(self, key: str) -> Optional[RangeRecord]:
        if key not in self.ranges:
            raise KeyError(f"Unknown range key: {key}")
        return self.ranges[key]

    def active_channel(self, family_id: str) -> Optional[ActiveChannel]:
        return self.last_active.get(family_id)

    def with_records(
        self,
        records: Mapping[str, Optional[SignalRecord]],
        family_id: Optional[str] = None,
        active: Optional[ActiveChannel] = None,
    ) -> "SymbolState":
        """New state with ``records`` merged in and optionally a new pointer."""
        channels = dict(self.channels)
        channels.update(records)
        last_active = dict(self.last_active)
        if family_id is not None:
            last_active[family_id] = active
        return SymbolState(channels=channels, ranges=self.ranges, last_active=last_active)

    def with_range(self, key: str, record: Optional[RangeRecord]) -> "SymbolState":
        ranges = dict(self.ranges)
        ranges[key] = record
        return SymbolState(channels=self.channels, ranges=ranges, last_active=self.last_active)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the flat wire/persistence layout."""
        data: dict[str, Any] = {}
        for key, record in self.channels.items():
            data[key] = record.to_dict() if record else None
        for key, range_record in self.ranges.items():
            data[key] = range_record.to_dict() if range_record else None
        data["lastActive"] = {
            family_id: pointer.to_dict() if pointer else None
            for family_id, pointer in self.last_active.items()
        }
        return data


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of applying one event to the store."""

    outcome: TransitionOutcome
    symbol: str
    channel_key: Optional[str] = None
    record: Optional[Union[SignalRecord, RangeRecord]] = None
    state: Optional[SymbolState] = None      # Committed state, set when updated
    reason: Optional[str] = None

    @property
    def updated(self) -> bool:
        return self.outcome is TransitionOutcome.UPDATED


@dataclass(frozen=True)
class PriceTick:
    """Ephemeral price update; never persisted."""

    symbol: str
    open_price: Price
    current_price: Price
    change_percent: Price
    time: EventTime

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "price_tick",
            "symbol": self.symbol,
            "openPrice": self.open_price,
            "currentPrice": self.current_price,
            "changePercent": self.change_percent,
            "time": self.time,
        }


@dataclass(frozen=True)
class StateSnapshot:
    """Immutable view of every symbol's state plus the display groups."""

    states: Mapping[str, SymbolState]
    display_group_a: tuple[str, ...]
    display_group_b: tuple[str, ...]

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "snapshot",
            "state": {symbol: state.to_dict() for symbol, state in self.states.items()},
            "displayGroupA": list(self.display_group_a),
            "displayGroupB": list(self.display_group_b),
        }
