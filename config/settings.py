from pathlib import Path
from typing import Literal, Optional
from functools import lru_cache

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GEMINI_")

    api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_BASE_URL",
    )
    snapshot_model: str = Field(default="gemini-3-flash-preview", alias="GEMINI_SNAPSHOT_MODEL")
    backtest_model: str = Field(default="gemini-3-pro-preview", alias="GEMINI_BACKTEST_MODEL")
    temperature: float = 0.2
    timeout: int = Field(default=120, alias="LLM_TIMEOUT")
    use_search: bool = True


class StrategySettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="")

    ticker: str = Field(default="BRK.B", alias="STRATEGY_TICKER")
    alternate_ticker: str = Field(default="QQQ", alias="STRATEGY_ALTERNATE_TICKER")
    buy_threshold: float = Field(default=1.45, alias="BUY_THRESHOLD")
    sell_threshold: float = Field(default=1.55, alias="SELL_THRESHOLD")
    multipliers: list[float] = [1.0, 1.2, 1.3, 1.4, 1.45, 1.5, 1.55, 1.6, 1.7, 1.8]
    backtest_start_year: int = 2020
    backtest_end_year: int = 2025
    distribution_years: int = 10

    @model_validator(mode="after")
    def check_thresholds(self) -> "StrategySettings":
        if self.buy_threshold >= self.sell_threshold:
            raise ValueError(
                f"buy_threshold ({self.buy_threshold}) must be below "
                f"sell_threshold ({self.sell_threshold})"
            )
        return self


class DashboardSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = Field(default="127.0.0.1", alias="DASHBOARD_HOST")
    port: int = Field(default=8788, alias="DASHBOARD_PORT")
    locale: Literal["en", "zh-TW"] = Field(default="en", alias="DASHBOARD_LOCALE")
    initial_capital: float = Field(default=10000, alias="INITIAL_CAPITAL")
    slider_min: float = 1.0
    slider_max: float = 2.0
    slider_step: float = 0.01
    default_custom_pbr: float = 1.45
    open_browser: bool = True


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    data_dir: Path = Field(default=Path("data"), alias="DATA_DIR")

    llm: LLMSettings = Field(default_factory=LLMSettings)
    strategy: StrategySettings = Field(default_factory=StrategySettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)

    @computed_field
    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"


@lru_cache
def get_settings() -> Settings:
    return Settings()
