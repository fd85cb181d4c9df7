"""User-facing strings for the dashboard and CLI, keyed by locale."""
from pbr_switch.models import Zone

DEFAULT_LOCALE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "refresh_failed": "Could not fetch the latest financials or PBR distribution.",
        "backtest_failed": "Live backtest unavailable; showing an offline estimate.",
        "zone.buy": "Buy",
        "zone.hold": "Hold",
        "zone.rotate": "Sell (rotate to {alternate})",
        "loading.snapshot": "Fetching the latest {ticker} financials and {years}-year PBR distribution...",
        "loading.backtest": "Simulating {ticker} / {alternate} / PBR switch performance...",
    },
    "zh-TW": {
        "refresh_failed": "無法獲取最新財報或分佈數據。",
        "backtest_failed": "即時回測無法使用，顯示離線估算結果。",
        "zone.buy": "建議買入",
        "zone.hold": "保持不動",
        "zone.rotate": "建議賣出 (換 {alternate})",
        "loading.snapshot": "正在抓取最新 {ticker} 財報及 {years} 年歷史分佈數據...",
        "loading.backtest": "正在模擬 {ticker} / {alternate} / PBR策略 三方績效...",
    },
}


def message(key: str, locale: str = DEFAULT_LOCALE, **params: str) -> str:
    catalog = MESSAGES.get(locale, MESSAGES[DEFAULT_LOCALE])
    template = catalog.get(key, MESSAGES[DEFAULT_LOCALE][key])
    return template.format(**params) if params else template


def zone_label(zone: Zone, locale: str = DEFAULT_LOCALE, alternate: str = "QQQ") -> str:
    return message(f"zone.{zone.value}", locale, alternate=alternate)
