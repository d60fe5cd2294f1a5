"""
Ingress validation for webhook payloads.

Turns raw JSON payloads into typed commands for the runtime, or raises an
IngressError. Nothing here touches state: a rejected event is rejected
before the engine runs.
"""

from dataclasses import dataclass
from typing import Any, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from ..errors import (
    MalformedEventError,
    MissingFieldError,
    UnknownIndicatorError,
    UnknownRangeWindowError,
    UnknownSymbolError,
)
from ..registry import SymbolRegistry
from ..state.families import RANGE_WINDOWS, ChannelFamily, family_for_indicator
from ..state.models import EventTime, Polarity, Price, PriceTick
from .models import PriceTickEvent, RangeEvent, SignalEvent

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class SignalCommand:
    """Validated signal event ready for the engine."""
    symbol: str
    family: ChannelFamily
    polarity: Polarity
    price: Price
    time: EventTime


@dataclass(frozen=True)
class RangeCommand:
    """Validated range event ready for the engine."""
    symbol: str
    window: str
    high: Price
    low: Price
    time: EventTime


class IngressValidator:
    """Validates webhook payloads against the wire models and the registry."""

    def __init__(self, registry: SymbolRegistry):
        self.registry = registry
        self.logger = logger

    def parse_signal(self, payload: Any) -> SignalCommand:
        """
        Validate a signal event.

        Raises:
            MissingFieldError: A required field is absent
            MalformedEventError: A field has the wrong type or value
            UnknownSymbolError: Symbol is not tracked
            UnknownIndicatorError: Indicator code has no channel family
        """
        event = self._parse(SignalEvent, payload)
        self._require_tracked(event.symbol)

        family = family_for_indicator(event.indicator)
        if family is None:
            raise UnknownIndicatorError(
                f"Invalid indicator value: {event.indicator}",
                indicator=event.indicator,
            )

        return SignalCommand(
            symbol=event.symbol,
            family=family,
            polarity=Polarity(event.signal),
            price=event.price,
            time=event.time,
        )

    def parse_range(self, payload: Any) -> RangeCommand:
        """Validate a range event."""
        event = self._parse(RangeEvent, payload)
        self._require_tracked(event.symbol)

        if event.type not in RANGE_WINDOWS:
            raise UnknownRangeWindowError(
                f"Invalid range type: {event.type}",
                window=event.type,
            )

        return RangeCommand(
            symbol=event.symbol,
            window=event.type,
            high=event.high,
            low=event.low,
            time=event.time,
        )

    def parse_price_tick(self, payload: Any) -> PriceTick:
        """Validate a price tick."""
        event = self._parse(PriceTickEvent, payload)
        self._require_tracked(event.symbol)

        return PriceTick(
            symbol=event.symbol,
            open_price=event.open_price,
            current_price=event.current_price,
            change_percent=event.change_percent,
            time=event.time,
        )

    def _require_tracked(self, symbol: str) -> None:
        if symbol not in self.registry:
            raise UnknownSymbolError("Symbol is not tracked.", symbol=symbol)

    def _parse(self, model: Type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            errors = e.errors()
            missing = [
                ".".join(str(part) for part in err["loc"])
                for err in errors
                if err["type"] == "missing"
            ]
            if missing:
                raise MissingFieldError(
                    f"Invalid {model.__name__} data. Missing fields: {', '.join(missing)}",
                    missing_fields=missing,
                ) from e

            first = errors[0]
            field = ".".join(str(part) for part in first["loc"]) or None
            raise MalformedEventError(
                f"Invalid {model.__name__} data: {field or 'payload'}: {first['msg']}",
                field=field,
                value=first.get("input"),
            ) from e
