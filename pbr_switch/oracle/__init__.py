from pbr_switch.oracle.client import GeminiClient
from pbr_switch.oracle.fallbacks import (
    fallback_backtest,
    fallback_distribution,
    fallback_snapshot,
)
from pbr_switch.oracle.oracle import GeminiOracle, MarketOracle
from pbr_switch.oracle.prompts import load_prompt, render_prompt


def create_oracle(settings) -> tuple[GeminiOracle, GeminiClient]:
    """
    Build a GeminiOracle around a freshly constructed client.

    The caller owns the returned client and must close it
    (``await client.close()`` or ``async with client``).

    Example:
        >>> oracle, client = create_oracle(get_settings())
        >>> async with client:
        ...     snapshot = await oracle.get_valuation_snapshot()
    """
    client = GeminiClient(
        api_key=settings.llm.api_key,
        base_url=settings.llm.base_url,
        timeout=settings.llm.timeout,
    )
    oracle = GeminiOracle(
        client=client,
        llm_settings=settings.llm,
        strategy_settings=settings.strategy,
    )
    return oracle, client


__all__ = [
    "GeminiClient",
    "GeminiOracle",
    "MarketOracle",
    "create_oracle",
    "fallback_backtest",
    "fallback_distribution",
    "fallback_snapshot",
    "load_prompt",
    "render_prompt",
]
