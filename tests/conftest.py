import pytest

from pbr_switch.models import (
    BacktestResult,
    FinancialSnapshot,
    PbrDistributionBucket,
)


def sample_payload(initial_capital: float = 10000.0) -> dict:
    labels = ["2020", "2021", "2022"]
    return {
        "labels": labels,
        "holdValues": [initial_capital, initial_capital * 1.2, initial_capital * 1.4],
        "qqqHoldValues": [initial_capital, initial_capital * 1.5, initial_capital * 1.1],
        "strategyValues": [initial_capital, initial_capital * 1.6, initial_capital * 1.8],
        "holdingTimeline": [
            {"label": "2020", "asset": "BRK.B"},
            {"label": "2021 Q2", "asset": "QQQ"},
        ],
        "numTrades": 3,
        "holdRoi": 40,
        "qqqRoi": 10,
        "strategyRoi": 80,
        "optimalBuyPbr": 1.44,
        "optimalSellPbr": 1.56,
        "description": "Switching captured the 2021 rally.",
    }


class FakeOracle:
    """In-memory MarketOracle; set ``fail_*`` to make a call raise."""

    def __init__(
        self,
        snapshot: FinancialSnapshot | None = None,
        distribution: list[PbrDistributionBucket] | None = None,
    ):
        self.snapshot = snapshot or FinancialSnapshot(
            total_equity_millions=700000,
            total_shares_class_a_equivalent=1400000,
            current_price=500,
            as_of="2025-06-30",
            source_url="https://example.com/10q",
        )
        self.distribution = distribution or [
            PbrDistributionBucket(range_label="< 1.4", percentage_of_time=60),
            PbrDistributionBucket(range_label=">= 1.4", percentage_of_time=40),
        ]
        self.fail_snapshot: Exception | None = None
        self.fail_distribution: Exception | None = None
        self.fail_backtest: Exception | None = None
        self.backtest_calls: list[tuple[float, float, float]] = []

    async def get_valuation_snapshot(self) -> FinancialSnapshot:
        if self.fail_snapshot:
            raise self.fail_snapshot
        return self.snapshot

    async def get_historical_distribution(self) -> list[PbrDistributionBucket]:
        if self.fail_distribution:
            raise self.fail_distribution
        return self.distribution

    async def get_backtest(
        self, initial_capital: float, buy_threshold: float, sell_threshold: float
    ) -> BacktestResult:
        self.backtest_calls.append((initial_capital, buy_threshold, sell_threshold))
        if self.fail_backtest:
            raise self.fail_backtest
        return BacktestResult.from_oracle_payload(sample_payload(initial_capital))


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def brk_snapshot() -> FinancialSnapshot:
    return FinancialSnapshot(
        total_equity_millions=649368,
        total_shares_class_a_equivalent=1438223,
        current_price=470,
        as_of="2024-12-31",
    )


@pytest.fixture
def backtest_payload() -> dict:
    return sample_payload(10000.0)
