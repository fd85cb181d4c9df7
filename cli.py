import asyncio

import typer
from loguru import logger

from config.settings import get_settings
from pbr_switch.dashboard import run_web_dashboard
from pbr_switch.messages import zone_label
from pbr_switch.oracle import create_oracle
from pbr_switch.orchestrator import AnalysisOrchestrator, project_for_chart
from pbr_switch.utils.exceptions import PbrSwitchError
from pbr_switch.utils.logging import setup_logging
from pbr_switch.valuation import implied_price

app = typer.Typer(no_args_is_help=True)


def _bootstrap():
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    return settings


@app.command()
def status() -> None:
    """Show configuration and whether the Gemini API key is set."""
    try:
        settings = _bootstrap()

        typer.echo("PBR Switch Configuration")
        typer.echo("=" * 50)
        typer.echo(f"Gemini API key configured: {'YES' if settings.llm.api_key else 'NO'}")
        typer.echo(f"Gemini endpoint: {settings.llm.base_url}")
        typer.echo(f"Snapshot model: {settings.llm.snapshot_model}")
        typer.echo(f"Backtest model: {settings.llm.backtest_model}")
        typer.echo(f"Web search grounding: {'ON' if settings.llm.use_search else 'OFF'}")
        typer.echo("")
        strategy = settings.strategy
        typer.echo(f"Pair: {strategy.ticker} / {strategy.alternate_ticker}")
        typer.echo(f"Buy at PBR <= {strategy.buy_threshold:.2f}")
        typer.echo(f"Rotate at PBR >= {strategy.sell_threshold:.2f}")
        typer.echo(f"Multipliers: {', '.join(f'{m:.2f}' for m in strategy.multipliers)}")
        typer.echo(f"Backtest window: {strategy.backtest_start_year}-{strategy.backtest_end_year}")
        typer.echo("")
        typer.echo(f"Dashboard: http://{settings.dashboard.host}:{settings.dashboard.port}")
        typer.echo(f"Log directory: {settings.log_dir}")

    except Exception as e:
        typer.echo(f"Status check failed: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def valuation() -> None:
    """Fetch the latest financials and print the PBR price ladder."""
    try:
        settings = _bootstrap()

        async def fetch_valuation() -> None:
            oracle, client = create_oracle(settings)
            async with client:
                orchestrator = AnalysisOrchestrator.from_settings(oracle, settings)
                state = await orchestrator.refresh_snapshot()

            if state.error:
                typer.echo(f"Warning: {state.error}", err=True)

            view = orchestrator.valuation_view()
            if view is None:
                raise PbrSwitchError("No snapshot available")

            locale = orchestrator.locale
            alternate = orchestrator.alternate_ticker
            snapshot = view.snapshot

            typer.echo(f"\n{orchestrator.ticker} valuation (as of {snapshot.as_of})")
            typer.echo("=" * 60)
            typer.echo(f"Shareholders' equity: ${snapshot.total_equity_millions / 1000:,.2f}B")
            typer.echo(f"Book value per A share: ${view.valuation.book_value_per_share_class_a:,.2f}")
            typer.echo(f"Book value per B share: ${view.valuation.book_value_per_share_class_b:,.2f}")
            typer.echo(f"Current price: ${snapshot.current_price:,.2f} (PBR {view.current_pbr:.2f})")
            typer.echo(f"Recommendation: {zone_label(view.zone, locale, alternate)}")
            if snapshot.source_url:
                typer.echo(f"Source: {snapshot.source_url}")
            typer.echo("")
            typer.echo(f"{'PBR':<8} | {'Price':<12} | {'Zone':<24}")
            typer.echo("-" * 60)
            for t in view.targets:
                marker = "*" if t.is_boundary else " "
                typer.echo(
                    f"{t.multiplier:.2f}x{marker:<2} | ${t.price:<11,.2f} | {zone_label(t.zone, locale, alternate):<24}"
                )

            if state.distribution:
                typer.echo("")
                typer.echo("Historical PBR distribution:")
                for bucket in state.distribution:
                    bar = "#" * int(round(bucket.percentage_of_time / 2))
                    typer.echo(f"{bucket.range_label:<10} | {bucket.percentage_of_time:>5.1f}% {bar}")

        asyncio.run(fetch_valuation())

    except PbrSwitchError as e:
        typer.echo(f"{e}", err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        logger.exception("Valuation command failed")
        raise typer.Exit(code=1)


@app.command()
def target(
    pbr: float = typer.Option(..., help="PBR multiple to price"),
) -> None:
    """Price BRK.B at an arbitrary PBR multiple using the latest book value."""
    try:
        settings = _bootstrap()

        async def fetch_target() -> None:
            oracle, client = create_oracle(settings)
            async with client:
                orchestrator = AnalysisOrchestrator.from_settings(oracle, settings)
                await orchestrator.refresh_snapshot()

            view = orchestrator.valuation_view()
            if view is None:
                raise PbrSwitchError("No snapshot available")

            price = implied_price(view.valuation, pbr)
            zone = orchestrator.engine.classify(pbr)
            typer.echo(
                f"{pbr:.2f}x book = ${price:,.2f} "
                f"({zone_label(zone, orchestrator.locale, orchestrator.alternate_ticker)})"
            )

        asyncio.run(fetch_target())

    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        logger.exception("Target command failed")
        raise typer.Exit(code=1)


@app.command()
def backtest(
    capital: float = typer.Option(None, help="Initial capital in USD"),
) -> None:
    """Run the BRK.B / QQQ / PBR switch backtest."""
    try:
        settings = _bootstrap()
        initial_capital = capital if capital is not None else settings.dashboard.initial_capital

        async def fetch_backtest() -> None:
            oracle, client = create_oracle(settings)
            async with client:
                orchestrator = AnalysisOrchestrator.from_settings(oracle, settings)
                result = await orchestrator.run_backtest(initial_capital)

            if orchestrator.state.backtest_error:
                typer.echo(f"Warning: {orchestrator.state.backtest_error}", err=True)

            if result.labels:
                period = f"{result.labels[0]} - {result.labels[-1]}"
            else:
                period = "no periods"
            typer.echo(f"\nBacktest ({period}), capital ${initial_capital:,.0f}")
            typer.echo("=" * 80)
            for series in result.strategies:
                final = f"final ${series.values[-1]:,.0f}" if series.values else "no values"
                typer.echo(f"{series.name:<30} | ROI {series.roi:+.1f}% | {final}")
            typer.echo(f"Trades: {result.num_trades}")
            typer.echo(f"Optimal band: buy {result.optimal_buy_pbr} / sell {result.optimal_sell_pbr}")
            typer.echo("")

            rows = project_for_chart(result)
            if rows:
                header = " | ".join(f"{s.key:>14}" for s in result.strategies)
                typer.echo(f"{'Period':<10} | {header}")
                typer.echo("-" * 80)
                for row in rows:
                    values = " | ".join(f"{row[s.key]:>14,.0f}" for s in result.strategies)
                    typer.echo(f"{row['label']:<10} | {values}")

            if result.description:
                typer.echo("")
                typer.echo(result.description)

        asyncio.run(fetch_backtest())

    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        logger.exception("Backtest command failed")
        raise typer.Exit(code=1)


@app.command()
def dashboard(
    host: str = typer.Option(None, help="Bind address"),
    port: int = typer.Option(None, help="Port"),
    no_browser: bool = typer.Option(False, "--no-browser", help="Do not open a browser"),
) -> None:
    """Serve the local web dashboard."""
    try:
        settings = _bootstrap()
        if no_browser:
            settings.dashboard.open_browser = False

        oracle, client = create_oracle(settings)
        orchestrator = AnalysisOrchestrator.from_settings(oracle, settings)
        run_web_dashboard(orchestrator, settings, host=host, port=port, client=client)

    except Exception as e:
        typer.echo(f"Dashboard failed: {e}", err=True)
        logger.exception("Dashboard command failed")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
