from pydantic import BaseModel

from pbr_switch.models.backtest import BacktestResult
from pbr_switch.models.snapshot import FinancialSnapshot, PbrDistributionBucket


class DashboardState(BaseModel):
    """Transient view state held by the orchestrator; nothing is persisted."""

    snapshot: FinancialSnapshot | None = None
    distribution: list[PbrDistributionBucket] = []
    backtest: BacktestResult | None = None
    loading: bool = False
    backtest_loading: bool = False
    error: str | None = None
    backtest_error: str | None = None
