"""Static registry of tracked symbols, split into two display groups."""

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

DISPLAY_GROUP_A: tuple[str, ...] = (
    "BANKNIFTY", "NIFTY", "MCX", "BSE", "TITAN", "SHREECEM",
    "BAJFINANCE", "DIVISLAB", "BEL", "ULTRACEMCO", "ETERNAL", "PAGEIND",
    "BRITANNIA", "ITC", "DLF", "HAL", "GLENMARK", "SUNPHARMA",
    "INDHOTEL", "SHRIRAMFIN", "INDUSTOWER", "BAJAJFINSV", "CANBK", "UNIONBANK",
)

DISPLAY_GROUP_B: tuple[str, ...] = (
    "LT", "LTF", "OFSS", "PERSISTENT", "SOLARINDS", "ABCAPITAL",
    "COFORGE", "JIOFIN", "SRF", "SBIN", "BHARTIARTL", "POLYCAB",
    "MARUTI", "EICHERMOT", "BHEL", "TVSMOTOR", "CGPOWER", "SUPREMEIND",
    "TCS", "INFY", "PIDILITIND", "CUMMINSIND", "TRENT", "KALYANKJIL",
)


@dataclass(frozen=True)
class SymbolRegistry:
    """Ordered, immutable set of tracked symbols."""

    display_group_a: tuple[str, ...]
    display_group_b: tuple[str, ...]

    @classmethod
    def create(
        cls,
        display_group_a: Optional[Sequence[str]] = None,
        display_group_b: Optional[Sequence[str]] = None,
    ) -> "SymbolRegistry":
        """Create a registry, falling back to the default groups."""
        group_a = tuple(display_group_a) if display_group_a is not None else DISPLAY_GROUP_A
        group_b = tuple(display_group_b) if display_group_b is not None else DISPLAY_GROUP_B

        duplicates = set(group_a) & set(group_b)
        if duplicates:
            raise ValueError(f"Symbols listed in both display groups: {sorted(duplicates)}")

        return cls(display_group_a=group_a, display_group_b=group_b)

    @property
    def symbols(self) -> tuple[str, ...]:
        return self.display_group_a + self.display_group_b

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.display_group_a or symbol in self.display_group_b

    def __iter__(self) -> Iterator[str]:
        return iter(self.symbols)

    def __len__(self) -> int:
        return len(self.display_group_a) + len(self.display_group_b)


def default_registry() -> SymbolRegistry:
    """Registry of the 48 default symbols."""
    return SymbolRegistry.create()
