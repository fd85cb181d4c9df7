"""BacktestResult model for the externally simulated switch strategy."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

BRK_HOLD = "brk_hold"
ALTERNATE_HOLD = "alternate_hold"
SWITCH_STRATEGY = "strategy"


class StrategySeries(BaseModel):
    model_config = {"from_attributes": True}

    key: str
    name: str
    values: list[float]
    roi: float


class HoldingPeriod(BaseModel):
    model_config = {"from_attributes": True}

    label: str
    asset: str


class BacktestResult(BaseModel):
    """
    Cumulative value curves for each strategy, aligned with ``labels``.

    Produced wholesale by the oracle (or the static fallback). Series length is
    checked against the labels; ROI and trade counts are taken as given.
    """

    model_config = {"from_attributes": True}

    labels: list[str]
    strategies: list[StrategySeries]
    holding_timeline: list[HoldingPeriod] = []
    num_trades: int = Field(ge=0)
    optimal_buy_pbr: float
    optimal_sell_pbr: float
    description: str = ""
    is_fallback: bool = False

    @model_validator(mode="after")
    def validate_alignment(self) -> "BacktestResult":
        for series in self.strategies:
            if len(series.values) != len(self.labels):
                raise ValueError(
                    f"Series '{series.key}' has {len(series.values)} values "
                    f"for {len(self.labels)} labels"
                )
        return self

    def series(self, key: str) -> StrategySeries:
        for series in self.strategies:
            if series.key == key:
                return series
        raise KeyError(key)

    @classmethod
    def from_oracle_payload(
        cls,
        payload: dict[str, Any],
        ticker: str = "BRK.B",
        alternate_ticker: str = "QQQ",
        is_fallback: bool = False,
    ) -> "BacktestResult":
        """Build from the flat camelCase document the oracle is asked to return."""
        return cls(
            labels=payload["labels"],
            strategies=[
                StrategySeries(
                    key=BRK_HOLD,
                    name=f"{ticker} Buy & Hold",
                    values=payload["holdValues"],
                    roi=payload["holdRoi"],
                ),
                StrategySeries(
                    key=ALTERNATE_HOLD,
                    name=f"{alternate_ticker} Buy & Hold",
                    values=payload["qqqHoldValues"],
                    roi=payload["qqqRoi"],
                ),
                StrategySeries(
                    key=SWITCH_STRATEGY,
                    name="PBR Switch Strategy",
                    values=payload["strategyValues"],
                    roi=payload["strategyRoi"],
                ),
            ],
            holding_timeline=[
                HoldingPeriod(label=item["label"], asset=item["asset"])
                for item in payload.get("holdingTimeline", [])
            ],
            num_trades=int(payload["numTrades"]),
            optimal_buy_pbr=payload["optimalBuyPbr"],
            optimal_sell_pbr=payload["optimalSellPbr"],
            description=payload.get("description", ""),
            is_fallback=is_fallback,
        )
