"""Wire models for webhook events."""

from typing import Annotated, Literal, Union

from pydantic import AliasChoices, AllowInfNan, BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

# NaN and Infinity parse from request bodies but cannot be re-serialised as JSON
FiniteFloat = Annotated[StrictFloat, AllowInfNan(False)]
Number = Union[StrictInt, FiniteFloat]
EventTimeField = Union[StrictStr, StrictInt, FiniteFloat]


class SignalEvent(BaseModel):
    """Directional indicator event posted to /webhook."""

    model_config = ConfigDict(extra="ignore")

    symbol: StrictStr = Field(min_length=1)
    signal: Literal["buy", "sell"]
    indicator: StrictInt
    price: Number
    time: EventTimeField


class RangeEvent(BaseModel):
    """Opening-range event posted to /range."""

    model_config = ConfigDict(extra="ignore")

    symbol: StrictStr = Field(min_length=1)
    type: StrictStr
    high: Number
    low: Number
    time: EventTimeField


class PriceTickEvent(BaseModel):
    """Price update posted to /price. Accepts camelCase or snake_case."""

    model_config = ConfigDict(extra="ignore")

    symbol: StrictStr = Field(min_length=1)
    open_price: Number = Field(validation_alias=AliasChoices("openPrice", "open_price"))
    current_price: Number = Field(validation_alias=AliasChoices("currentPrice", "current_price"))
    change_percent: Number = Field(validation_alias=AliasChoices("changePercent", "change_percent"))
    time: EventTimeField
