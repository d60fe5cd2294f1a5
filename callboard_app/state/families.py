"""
Channel family table.

A family groups the channels of one indicator and timeframe. Polar families
own a buy key and a sell key; gating families own a single key whose record
carries its own polarity (GO = buy, STOP = sell).
"""

from dataclasses import dataclass
from typing import Optional

from .models import Polarity


@dataclass(frozen=True)
class ChannelFamily:
    """One row of the family table."""

    family_id: str
    buy_key: str
    sell_key: Optional[str] = None

    @property
    def gating(self) -> bool:
        return self.sell_key is None

    @property
    def keys(self) -> tuple[str, ...]:
        if self.sell_key is None:
            return (self.buy_key,)
        return (self.buy_key, self.sell_key)

    def key_for(self, polarity: Polarity) -> str:
        """Channel key an event of ``polarity`` lands on."""
        if self.sell_key is None or polarity is Polarity.BUY:
            return self.buy_key
        return self.sell_key

    def sibling_of(self, key: str) -> Optional[str]:
        """Opposite-polarity key within the family, None for gating families."""
        if self.sell_key is None:
            return None
        if key == self.buy_key:
            return self.sell_key
        if key == self.sell_key:
            return self.buy_key
        raise KeyError(f"{key} does not belong to family {self.family_id}")

    def polarity_of(self, key: str) -> Optional[Polarity]:
        """Polarity implied by a polar key; None for the gating key."""
        if self.sell_key is None:
            return None
        if key == self.buy_key:
            return Polarity.BUY
        if key == self.sell_key:
            return Polarity.SELL
        raise KeyError(f"{key} does not belong to family {self.family_id}")


CALL1 = ChannelFamily("call1", "call1_buy", "call1_sell")
CALL2 = ChannelFamily("call2", "call2_buy", "call2_sell")
CALL3 = ChannelFamily("call3", "call3_go")
CALL1_1H = ChannelFamily("call1_1h", "call1_1h_buy", "call1_1h_sell")
CALL2_1H = ChannelFamily("call2_1h", "call2_1h_buy", "call2_1h_sell")
CALL3_1H = ChannelFamily("call3_1h", "call3_1h")
CALL1_PAGE2 = ChannelFamily("call1_page2", "call1_buy_page2", "call1_sell_page2")
CALL2_PAGE2 = ChannelFamily("call2_page2", "call2_buy_page2", "call2_sell_page2")
CALL3_PAGE2 = ChannelFamily("call3_page2", "call3_buy_page2", "call3_sell_page2")

FAMILIES: tuple[ChannelFamily, ...] = (
    CALL1, CALL2, CALL3,
    CALL1_1H, CALL2_1H, CALL3_1H,
    CALL1_PAGE2, CALL2_PAGE2, CALL3_PAGE2,
)

# Webhook indicator code -> family. Hourly variants are offset by 100,
# secondary-page variants by 200.
INDICATOR_FAMILIES: dict[int, ChannelFamily] = {
    1: CALL1,
    10: CALL2,
    3: CALL3,
    101: CALL1_1H,
    110: CALL2_1H,
    103: CALL3_1H,
    201: CALL1_PAGE2,
    210: CALL2_PAGE2,
    203: CALL3_PAGE2,
}

# Range event window label -> fixed state key.
RANGE_WINDOWS: dict[str, str] = {
    "15m": "orb_15m",
    "30m": "orb_30m",
    "1h": "orb_1h",
}

_FAMILIES_BY_ID = {family.family_id: family for family in FAMILIES}
_FAMILIES_BY_KEY = {key: family for family in FAMILIES for key in family.keys}


def family_for_indicator(indicator: int) -> Optional[ChannelFamily]:
    return INDICATOR_FAMILIES.get(indicator)


def family_by_id(family_id: str) -> Optional[ChannelFamily]:
    return _FAMILIES_BY_ID.get(family_id)


def family_for_key(key: str) -> Optional[ChannelFamily]:
    return _FAMILIES_BY_KEY.get(key)


def all_channel_keys() -> tuple[str, ...]:
    return tuple(key for family in FAMILIES for key in family.keys)


def all_range_keys() -> tuple[str, ...]:
    return tuple(RANGE_WINDOWS.values())
