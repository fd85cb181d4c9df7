import json
import threading
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from config.settings import Settings
from pbr_switch.dashboard import web
from pbr_switch.dashboard.web import DashboardHTTPServer, build_dashboard_payload
from pbr_switch.models import FinancialSnapshot, ZoneThresholds
from pbr_switch.orchestrator import AnalysisOrchestrator
from pbr_switch.utils.exceptions import LLMError
from pbr_switch.valuation import ValuationEngine


@pytest.fixture
def settings() -> Settings:
    settings = Settings()
    settings.dashboard.open_browser = False
    return settings


@pytest.fixture
def orchestrator(fake_oracle) -> AnalysisOrchestrator:
    engine = ValuationEngine(
        thresholds=ZoneThresholds(buy_at_or_below=1.45, rotate_at_or_above=1.55),
        multipliers=[1.0, 1.45, 1.5, 1.55],
    )
    return AnalysisOrchestrator(oracle=fake_oracle, engine=engine)


@pytest.fixture
def server(orchestrator, settings):
    server = DashboardHTTPServer(("127.0.0.1", 0), orchestrator, settings)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


def _base_url(server: DashboardHTTPServer) -> str:
    host, port = server.server_address[:2]
    return f"http://{host}:{port}"


def test_payload_before_any_fetch(orchestrator, settings) -> None:
    payload = build_dashboard_payload(orchestrator, settings)

    assert payload["valuation"] is None
    assert payload["backtest"] is None
    assert payload["chart_rows"] == []
    assert payload["distribution"] == []
    assert payload["state"]["loading"] is False
    assert payload["slider"]["value"] == settings.dashboard.default_custom_pbr
    assert payload["initial_capital"] == settings.dashboard.initial_capital


@pytest.mark.asyncio
async def test_payload_after_refresh_and_backtest(orchestrator, settings) -> None:
    await orchestrator.refresh_snapshot()
    await orchestrator.run_backtest(10000)

    payload = build_dashboard_payload(orchestrator, settings, custom_pbr=1.5)

    valuation = payload["valuation"]
    assert valuation["current_pbr"] == pytest.approx(1.5)
    assert valuation["zone"] == "hold"
    assert valuation["zone_label"] == "Hold"
    assert valuation["custom_price"] == pytest.approx(500.0)
    assert [t["zone"] for t in valuation["targets"]] == ["buy", "buy", "hold", "rotate"]
    assert [t["is_boundary"] for t in valuation["targets"]] == [False, True, False, True]
    assert len(payload["chart_rows"]) == len(payload["backtest"]["labels"])
    assert payload["distribution"][0]["range_label"] == "< 1.4"
    json.dumps(payload)


def test_payload_with_zero_shares_is_json_safe(orchestrator, settings) -> None:
    orchestrator.state.snapshot = FinancialSnapshot(
        total_equity_millions=100,
        total_shares_class_a_equivalent=0,
        current_price=470,
        as_of="2025-01-01",
    )

    payload = build_dashboard_payload(orchestrator, settings)

    assert payload["valuation"]["book_value_per_share_class_b"] is None
    assert payload["valuation"]["targets"][0]["price"] is None
    json.dumps(payload, allow_nan=False)


@pytest.mark.asyncio
async def test_payload_reports_fallback_error(orchestrator, settings, fake_oracle) -> None:
    fake_oracle.fail_backtest = LLMError("down", model="m")
    await orchestrator.run_backtest(10000)

    payload = build_dashboard_payload(orchestrator, settings)

    assert payload["backtest"]["is_fallback"] is True
    assert payload["state"]["backtest_error"]
    assert payload["state"]["backtest_loading"] is False


def test_http_routes(server) -> None:
    base = _base_url(server)

    with httpx.Client(timeout=5.0) as client:
        page = client.get(f"{base}/")
        assert page.status_code == 200
        assert "PBR Switch Dashboard" in page.text

        assert client.get(f"{base}/api/state").json()["valuation"] is None

        refreshed = client.post(f"{base}/api/refresh").json()
        assert refreshed["valuation"]["zone"] == "hold"

        target = client.get(f"{base}/api/target", params={"pbr": "1.2"}).json()
        assert target["valuation"]["custom_price"] == pytest.approx(400.0)

        backtest = client.post(f"{base}/api/backtest", json={"initial_capital": 20000}).json()
        assert backtest["chart_rows"][0]["strategy"] == 20000

        assert client.get(f"{base}/api/target", params={"pbr": "abc"}).status_code == 400
        assert client.post(f"{base}/api/backtest", json={"initial_capital": "lots"}).status_code == 400
        assert client.get(f"{base}/missing").status_code == 404


def test_run_web_dashboard_skips_browser_when_disabled(monkeypatch, orchestrator, settings) -> None:
    opened: list[str] = []
    monkeypatch.setattr(web.webbrowser, "open", lambda url: opened.append(url))

    class StoppingServer(DashboardHTTPServer):
        def serve_forever(self, poll_interval: float = 0.5) -> None:
            raise KeyboardInterrupt

    monkeypatch.setattr(web, "DashboardHTTPServer", StoppingServer)

    web.run_web_dashboard(orchestrator, settings, host="127.0.0.1", port=0)

    assert opened == []


@pytest.mark.asyncio
async def test_payload_never_carries_nan(orchestrator, settings) -> None:
    await orchestrator.run_backtest(float("nan"))

    payload = build_dashboard_payload(orchestrator, settings, custom_pbr=float("nan"))

    assert payload["slider"]["value"] == settings.dashboard.default_custom_pbr
    assert payload["chart_rows"][0]["strategy"] is None
    assert payload["backtest"]["strategies"][0]["values"][0] is None
    json.dumps(payload, allow_nan=False)


def test_loading_message_follows_distribution_window(orchestrator, settings) -> None:
    settings.strategy.distribution_years = 15

    payload = build_dashboard_payload(orchestrator, settings)

    assert "15-year" in payload["messages"]["loading_snapshot"]


@pytest.mark.parametrize("pbr", ["nan", "inf", "-inf"])
def test_target_rejects_non_finite_pbr(server, pbr) -> None:
    with httpx.Client(timeout=5.0) as client:
        response = client.get(f"{_base_url(server)}/api/target", params={"pbr": pbr})
    assert response.status_code == 400


@pytest.mark.parametrize("capital", ["nan", "Infinity", 0, -500])
def test_backtest_rejects_unusable_capital(server, fake_oracle, capital) -> None:
    with httpx.Client(timeout=5.0) as client:
        response = client.post(f"{_base_url(server)}/api/backtest", json={"initial_capital": capital})
    assert response.status_code == 400
    assert fake_oracle.backtest_calls == []


def test_server_close_closes_llm_client(orchestrator, settings) -> None:
    llm_client = Mock()
    llm_client.close = AsyncMock()

    server = DashboardHTTPServer(("127.0.0.1", 0), orchestrator, settings, client=llm_client)
    server.server_close()

    llm_client.close.assert_awaited_once()
    assert server.loop.is_closed()


def test_run_web_dashboard_closes_client_on_exit(monkeypatch, orchestrator, settings) -> None:
    llm_client = Mock()
    llm_client.close = AsyncMock()

    class StoppingServer(DashboardHTTPServer):
        def serve_forever(self, poll_interval: float = 0.5) -> None:
            raise KeyboardInterrupt

    monkeypatch.setattr(web, "DashboardHTTPServer", StoppingServer)

    web.run_web_dashboard(orchestrator, settings, host="127.0.0.1", port=0, client=llm_client)

    llm_client.close.assert_awaited_once()
