from pbr_switch.models.snapshot import (
    FinancialSnapshot,
    PbrDistributionBucket,
    distribution_total,
)
from pbr_switch.models.valuation import (
    PriceTarget,
    Valuation,
    Zone,
    ZonedTarget,
    ZoneThresholds,
)
from pbr_switch.models.backtest import (
    ALTERNATE_HOLD,
    BRK_HOLD,
    SWITCH_STRATEGY,
    BacktestResult,
    HoldingPeriod,
    StrategySeries,
)
from pbr_switch.models.state import DashboardState

__all__ = [
    "FinancialSnapshot",
    "PbrDistributionBucket",
    "distribution_total",
    "PriceTarget",
    "Valuation",
    "Zone",
    "ZonedTarget",
    "ZoneThresholds",
    "ALTERNATE_HOLD",
    "BRK_HOLD",
    "SWITCH_STRATEGY",
    "BacktestResult",
    "HoldingPeriod",
    "StrategySeries",
    "DashboardState",
]
