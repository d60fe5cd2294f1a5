"""
Decoding of persisted symbol state blobs.

Blobs are merged over a freshly initialised state: keys the board no longer
knows are dropped, keys added since the blob was written stay None. Older
blobs used different field names (``count``, ``newSince``,
``trendStartTime``, ``signalType``, ``_lastCall1Key``); they are read
transparently so a store written by an earlier deployment still reloads.
"""

from typing import Any, Mapping, Optional

import structlog

from .families import family_by_id
from .models import ActiveChannel, Polarity, RangeRecord, SignalRecord, SymbolState

logger = structlog.get_logger(__name__)

# Legacy flat pointer fields -> family id
LEGACY_POINTER_FIELDS = {
    "_lastCall1Key": "call1",
    "_lastCall2Key": "call2",
    "_lastCall3Key": "call3",
}


def _first(data: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if data.get(name) is not None:
            return data[name]
    return default


def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{what} must be an object, got {type(value).__name__}")
    return value


def decode_signal_record(data: Mapping[str, Any]) -> SignalRecord:
    """Build a SignalRecord from current or legacy field names."""
    data = _require_mapping(data, "signal record")
    observed_at = _first(data, "observedAt", "newSince", default=0)
    polarity = _first(data, "polarity", "signalType")
    return SignalRecord(
        price=data["price"],
        time=data["time"],
        first_seen_at=_first(data, "firstSeenAt", "trendStartTime", default=observed_at),
        observed_at=observed_at,
        repeat_count=int(_first(data, "repeatCount", "count", default=1)),
        active=bool(data.get("active", True)),
        polarity=Polarity(polarity) if polarity is not None else None,
    )


def decode_range_record(data: Mapping[str, Any]) -> RangeRecord:
    data = _require_mapping(data, "range record")
    return RangeRecord(
        high=data["high"],
        low=data["low"],
        time=data["time"],
        observed_at=_first(data, "observedAt", "newSince", default=0),
    )


def _decode_pointer(family_id: str, value: Any) -> Optional[ActiveChannel]:
    family = family_by_id(family_id)
    if family is None or value is None:
        return None

    if isinstance(value, Mapping):
        key = value.get("key")
        polarity = value.get("polarity")
        if key not in family.keys or polarity is None:
            return None
        return ActiveChannel(key=key, polarity=Polarity(polarity))

    # Legacy pointers are a bare channel key
    if value not in family.keys:
        return None
    implied = family.polarity_of(value)
    return ActiveChannel(key=value, polarity=implied or Polarity.BUY)


def decode_symbol_state(data: Mapping[str, Any], base: SymbolState) -> SymbolState:
    """
    Merge a persisted blob over ``base``.

    Args:
        data: Decoded JSON blob
        base: Freshly initialised state defining the known keys

    Returns:
        New SymbolState
    """
    data = _require_mapping(data, "state blob")
    channels = dict(base.channels)
    ranges = dict(base.ranges)
    last_active = dict(base.last_active)

    for key, value in data.items():
        if key in channels:
            channels[key] = decode_signal_record(value) if value else None
        elif key in ranges:
            ranges[key] = decode_range_record(value) if value else None
        elif key in LEGACY_POINTER_FIELDS and LEGACY_POINTER_FIELDS[key] in last_active:
            last_active[LEGACY_POINTER_FIELDS[key]] = _decode_pointer(LEGACY_POINTER_FIELDS[key], value)
        elif key != "lastActive":
            logger.debug("Dropping unknown persisted key", key=key)

    pointers = _require_mapping(data.get("lastActive") or {}, "lastActive")
    for family_id, pointer in pointers.items():
        if family_id in last_active:
            last_active[family_id] = _decode_pointer(family_id, pointer)

    # Gating records written before polarity was tracked as a pointer
    for family_id, pointer in last_active.items():
        family = family_by_id(family_id)
        if pointer is None or family is None or not family.gating:
            continue
        record = channels.get(pointer.key)
        if record is not None and record.polarity is not None:
            last_active[family_id] = ActiveChannel(key=pointer.key, polarity=record.polarity)

    return SymbolState(channels=channels, ranges=ranges, last_active=last_active)
