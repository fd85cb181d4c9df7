"""
Analysis Orchestrator - sequences oracle requests and holds the view state.
"""
import asyncio
from typing import Any

from loguru import logger

from pbr_switch.messages import message
from pbr_switch.models import (
    BacktestResult,
    DashboardState,
    FinancialSnapshot,
    Valuation,
    Zone,
    ZonedTarget,
)
from pbr_switch.oracle import MarketOracle, fallback_backtest, fallback_distribution, fallback_snapshot
from pbr_switch.valuation import ValuationEngine


def project_for_chart(result: BacktestResult | None) -> list[dict[str, Any]]:
    """
    Zip labels with every strategy series: one row per label.

    Each row is ``{"label": label, <strategy key>: value, ...}``.
    """
    if result is None:
        return []

    return [
        {"label": label, **{s.key: s.values[i] for s in result.strategies}}
        for i, label in enumerate(result.labels)
    ]


class ValuationView:
    """Snapshot plus everything derived from it for one render."""

    def __init__(
        self,
        snapshot: FinancialSnapshot,
        valuation: Valuation,
        current_pbr: float,
        zone: Zone,
        targets: list[ZonedTarget],
    ):
        self.snapshot = snapshot
        self.valuation = valuation
        self.current_pbr = current_pbr
        self.zone = zone
        self.targets = targets


class AnalysisOrchestrator:
    """
    Drives the refresh and backtest actions against an injected oracle.

    All state lives in ``self.state`` and is mutated on the event loop that
    awaits these coroutines. Concurrent invocations are not de-duplicated; the
    last response to resolve wins.
    """

    def __init__(
        self,
        oracle: MarketOracle,
        engine: ValuationEngine,
        locale: str = "en",
        alternate_ticker: str = "QQQ",
        ticker: str = "BRK.B",
    ):
        self.oracle = oracle
        self.engine = engine
        self.locale = locale
        self.ticker = ticker
        self.alternate_ticker = alternate_ticker
        self.state = DashboardState()

    @classmethod
    def from_settings(cls, oracle: MarketOracle, settings) -> "AnalysisOrchestrator":
        return cls(
            oracle=oracle,
            engine=ValuationEngine.from_settings(settings.strategy),
            locale=settings.dashboard.locale,
            ticker=settings.strategy.ticker,
            alternate_ticker=settings.strategy.alternate_ticker,
        )

    async def refresh_snapshot(self) -> DashboardState:
        """
        Fetch the financial snapshot and PBR distribution together.

        If either request fails nothing fetched is applied: prior state is kept,
        and the static defaults fill in only where no prior state exists.
        Slots are filled independently, so a real prior snapshot can end up
        shown next to the default distribution.
        """
        self.state.loading = True
        self.state.error = None

        try:
            snapshot, distribution = await asyncio.gather(
                self.oracle.get_valuation_snapshot(),
                self.oracle.get_historical_distribution(),
                return_exceptions=True,
            )

            failures = [r for r in (snapshot, distribution) if isinstance(r, BaseException)]
            for failure in failures:
                if not isinstance(failure, Exception):
                    raise failure
                logger.error(f"Refresh request failed: {failure}")

            if failures:
                self.state.error = message("refresh_failed", self.locale)
                if self.state.snapshot is None:
                    self.state.snapshot = fallback_snapshot()
                if not self.state.distribution:
                    self.state.distribution = fallback_distribution()
            else:
                self.state.snapshot = snapshot
                self.state.distribution = distribution
                logger.info("Snapshot and distribution refreshed")

        finally:
            self.state.loading = False

        return self.state

    async def run_backtest(self, initial_capital: float) -> BacktestResult:
        """
        Request one backtest; any failure substitutes the static fallback.

        Args:
            initial_capital: Starting capital shared by every strategy

        Returns:
            The stored BacktestResult (live or fallback)
        """
        thresholds = self.engine.thresholds
        self.state.backtest_loading = True
        self.state.backtest_error = None

        try:
            result = await self.oracle.get_backtest(
                initial_capital,
                thresholds.buy_at_or_below,
                thresholds.rotate_at_or_above,
            )
        except Exception as e:
            logger.error(f"Backtest failed: {e}")
            result = fallback_backtest(
                initial_capital,
                thresholds.buy_at_or_below,
                thresholds.rotate_at_or_above,
                ticker=self.ticker,
                alternate_ticker=self.alternate_ticker,
            )
            self.state.backtest_error = message("backtest_failed", self.locale)
        finally:
            self.state.backtest_loading = False

        self.state.backtest = result
        return result

    def valuation_view(self) -> ValuationView | None:
        snapshot = self.state.snapshot
        if snapshot is None:
            return None

        valuation = self.engine.value(snapshot)
        pbr = self.engine.current_pbr(snapshot, valuation)
        return ValuationView(
            snapshot=snapshot,
            valuation=valuation,
            current_pbr=pbr,
            zone=self.engine.classify(pbr),
            targets=self.engine.zone_targets(valuation),
        )

    def chart_rows(self) -> list[dict[str, Any]]:
        return project_for_chart(self.state.backtest)
