from pbr_switch.messages import MESSAGES, message, zone_label
from pbr_switch.models import Zone


def test_locales_share_keys() -> None:
    assert MESSAGES["en"].keys() == MESSAGES["zh-TW"].keys()


def test_refresh_failed_is_localized() -> None:
    assert message("refresh_failed", "en") == "Could not fetch the latest financials or PBR distribution."
    assert message("refresh_failed", "zh-TW") == "無法獲取最新財報或分佈數據。"


def test_unknown_locale_falls_back_to_english() -> None:
    assert message("zone.buy", "fr") == "Buy"


def test_zone_labels_name_alternate() -> None:
    assert zone_label(Zone.BUY) == "Buy"
    assert zone_label(Zone.HOLD, "zh-TW") == "保持不動"
    assert zone_label(Zone.ROTATE, "en", alternate="SPY") == "Sell (rotate to SPY)"
    assert zone_label(Zone.ROTATE, "zh-TW") == "建議賣出 (換 QQQ)"


def test_loading_messages_interpolate_tickers() -> None:
    text = message("loading.backtest", "en", ticker="BRK.B", alternate="QQQ")
    assert "BRK.B / QQQ" in text


def test_loading_snapshot_uses_configured_window() -> None:
    assert "15-year PBR distribution" in message("loading.snapshot", "en", ticker="BRK.B", years=15)
    assert "15 年" in message("loading.snapshot", "zh-TW", ticker="BRK.B", years=15)
