from enum import Enum

from pydantic import BaseModel, model_validator


class Zone(str, Enum):
    BUY = "buy"
    HOLD = "hold"
    ROTATE = "rotate"


class ZoneThresholds(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    buy_at_or_below: float
    rotate_at_or_above: float

    @model_validator(mode="after")
    def validate_ordering(self) -> "ZoneThresholds":
        if not self.buy_at_or_below < self.rotate_at_or_above:
            raise ValueError("buy threshold must be strictly below rotate threshold")
        return self


class PriceTarget(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    multiplier: float
    price: float


class ZonedTarget(BaseModel):
    model_config = {"from_attributes": True}

    multiplier: float
    price: float
    zone: Zone
    is_boundary: bool = False


class Valuation(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    book_value_per_share_class_a: float
    book_value_per_share_class_b: float
    price_targets: list[PriceTarget]
