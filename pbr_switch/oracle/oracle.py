"""
Market Oracle - opaque, non-deterministic source of financials and backtests.

Nothing returned here is computed locally: the model searches the web and
answers in the declared JSON shape. Callers decide what to do on failure.
"""
from datetime import date
from typing import Any, Protocol

from loguru import logger
from pydantic import ValidationError

from pbr_switch.models import BacktestResult, FinancialSnapshot, PbrDistributionBucket
from pbr_switch.oracle.client import GeminiClient
from pbr_switch.oracle.prompts import render_prompt
from pbr_switch.utils.exceptions import ResponseValidationError

SNAPSHOT_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "totalEquity": {"type": "NUMBER"},
        "totalAShares": {"type": "NUMBER"},
        "currentPrice": {"type": "NUMBER"},
        "source": {"type": "STRING"},
    },
    "required": ["totalEquity", "totalAShares", "currentPrice"],
}

DISTRIBUTION_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "range": {"type": "STRING"},
            "percentage": {"type": "NUMBER"},
        },
        "required": ["range", "percentage"],
    },
}


def backtest_schema(ticker: str, alternate_ticker: str) -> dict[str, Any]:
    number_list = {"type": "ARRAY", "items": {"type": "NUMBER"}}
    required = [
        "labels", "holdValues", "qqqHoldValues", "strategyValues", "holdingTimeline",
        "numTrades", "holdRoi", "qqqRoi", "strategyRoi", "optimalBuyPbr",
        "optimalSellPbr", "description",
    ]
    return {
        "type": "OBJECT",
        "properties": {
            "labels": {"type": "ARRAY", "items": {"type": "STRING"}},
            "holdValues": number_list,
            "qqqHoldValues": number_list,
            "strategyValues": number_list,
            "holdingTimeline": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "label": {"type": "STRING"},
                        "asset": {"type": "STRING", "enum": [ticker, alternate_ticker]},
                    },
                    "required": ["label", "asset"],
                },
            },
            "numTrades": {"type": "NUMBER"},
            "holdRoi": {"type": "NUMBER"},
            "qqqRoi": {"type": "NUMBER"},
            "strategyRoi": {"type": "NUMBER"},
            "optimalBuyPbr": {"type": "NUMBER"},
            "optimalSellPbr": {"type": "NUMBER"},
            "description": {"type": "STRING"},
        },
        "required": required,
    }


class MarketOracle(Protocol):
    async def get_valuation_snapshot(self) -> FinancialSnapshot: ...

    async def get_historical_distribution(self) -> list[PbrDistributionBucket]: ...

    async def get_backtest(
        self,
        initial_capital: float,
        buy_threshold: float,
        sell_threshold: float,
    ) -> BacktestResult: ...


class GeminiOracle:
    """MarketOracle backed by search-grounded Gemini calls."""

    def __init__(self, client: GeminiClient, llm_settings, strategy_settings):
        """
        Initialize the oracle.

        Args:
            client: Injected GeminiClient (owned by the caller)
            llm_settings: LLMSettings (models, temperature, search toggle)
            strategy_settings: StrategySettings (tickers, backtest window)
        """
        self.client = client
        self.llm = llm_settings
        self.strategy = strategy_settings

    async def get_valuation_snapshot(self) -> FinancialSnapshot:
        system, prompt = render_prompt("financial_snapshot", ticker=self.strategy.ticker)

        result = await self.client.generate_json(
            model=self.llm.snapshot_model,
            prompt=prompt,
            schema=SNAPSHOT_SCHEMA,
            system=system,
            temperature=self.llm.temperature,
            use_search=self.llm.use_search,
        )

        try:
            snapshot = FinancialSnapshot(
                total_equity_millions=result["totalEquity"],
                total_shares_class_a_equivalent=result["totalAShares"],
                current_price=result["currentPrice"],
                as_of=date.today().isoformat(),
                source_url=result.get("source"),
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise ResponseValidationError(str(e), operation="financial snapshot") from e

        logger.info(
            f"Snapshot: equity ${snapshot.total_equity_millions:,.0f}M, "
            f"{snapshot.total_shares_class_a_equivalent:,.0f} A-equivalent shares, "
            f"price ${snapshot.current_price:.2f}"
        )
        return snapshot

    async def get_historical_distribution(self) -> list[PbrDistributionBucket]:
        end_year = self.strategy.backtest_end_year - 1
        system, prompt = render_prompt(
            "pbr_distribution",
            ticker=self.strategy.ticker,
            years=self.strategy.distribution_years,
            start_year=end_year - self.strategy.distribution_years,
            end_year=end_year,
        )

        result = await self.client.generate_json(
            model=self.llm.snapshot_model,
            prompt=prompt,
            schema=DISTRIBUTION_SCHEMA,
            system=system,
            temperature=self.llm.temperature,
            use_search=self.llm.use_search,
        )

        try:
            buckets = [
                PbrDistributionBucket(range_label=item["range"], percentage_of_time=item["percentage"])
                for item in result
            ]
        except (KeyError, TypeError, ValidationError) as e:
            raise ResponseValidationError(str(e), operation="PBR distribution") from e

        logger.info(f"PBR distribution: {len(buckets)} buckets")
        return buckets

    async def get_backtest(
        self,
        initial_capital: float,
        buy_threshold: float,
        sell_threshold: float,
    ) -> BacktestResult:
        ticker = self.strategy.ticker
        alternate = self.strategy.alternate_ticker
        system, prompt = render_prompt(
            "backtest",
            ticker=ticker,
            alternate_ticker=alternate,
            initial_capital=initial_capital,
            buy_threshold=buy_threshold,
            sell_threshold=sell_threshold,
            start_year=self.strategy.backtest_start_year,
            end_year=self.strategy.backtest_end_year,
        )

        result = await self.client.generate_json(
            model=self.llm.backtest_model,
            prompt=prompt,
            schema=backtest_schema(ticker, alternate),
            system=system,
            temperature=self.llm.temperature,
            use_search=self.llm.use_search,
        )

        try:
            backtest = BacktestResult.from_oracle_payload(result, ticker=ticker, alternate_ticker=alternate)
        except (KeyError, TypeError, ValueError) as e:
            # pydantic's ValidationError is a ValueError
            raise ResponseValidationError(str(e), operation="backtest") from e

        logger.info(
            f"Backtest: {len(backtest.labels)} periods, {backtest.num_trades} trades, "
            f"optimal band {backtest.optimal_buy_pbr}/{backtest.optimal_sell_pbr}"
        )
        return backtest
