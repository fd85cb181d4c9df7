"""
Local web dashboard for the PBR switch tool.

Served by the stdlib HTTP server; orchestrator coroutines run on one
background event loop so view state is only mutated from that thread.
"""
from __future__ import annotations

import asyncio
import json
import math
import threading
import webbrowser
from datetime import datetime, timezone
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlparse

from loguru import logger

from config.settings import Settings
from pbr_switch.messages import message, zone_label
from pbr_switch.oracle import GeminiClient
from pbr_switch.orchestrator import AnalysisOrchestrator
from pbr_switch.valuation import implied_price


DASHBOARD_HTML = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>PBR Switch Dashboard</title>
  <style>
    :root {
      --bg: #f8fafc;
      --card: #ffffff;
      --muted: #64748b;
      --text: #0f172a;
      --buy: #059669;
      --hold: #d97706;
      --rotate: #e11d48;
      --accent: #4f46e5;
      --border: #e2e8f0;
    }
    body {
      margin: 0;
      font-family: Inter, ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Arial, sans-serif;
      background: var(--bg);
      color: var(--text);
    }
    .container { max-width: 1150px; margin: 24px auto; padding: 0 16px; }
    h1 { margin: 0 0 6px; font-size: 1.8rem; }
    .subtitle { color: var(--muted); margin-bottom: 16px; }
    .tabs { display: flex; gap: 8px; margin-bottom: 16px; }
    .tab, .action {
      border: 1px solid var(--border);
      background: var(--card);
      border-radius: 8px;
      padding: 8px 14px;
      font-weight: 700;
      cursor: pointer;
    }
    .tab.active { background: var(--accent); color: #fff; border-color: var(--accent); }
    .action { margin-left: auto; }
    .grid {
      display: grid;
      grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
      gap: 12px;
      margin-bottom: 16px;
    }
    .card {
      background: var(--card);
      border: 1px solid var(--border);
      border-radius: 14px;
      padding: 16px;
      box-shadow: 0 1px 3px rgba(0, 0, 0, 0.05);
    }
    .label { color: var(--muted); font-size: 0.85rem; margin-bottom: 8px; }
    .value { font-size: 1.4rem; font-weight: 700; }
    .sub { color: var(--muted); font-size: 0.75rem; margin-top: 4px; }
    .zone-buy { color: var(--buy); }
    .zone-hold { color: var(--hold); }
    .zone-rotate { color: var(--rotate); }
    .error { color: var(--rotate); font-weight: 600; margin-bottom: 12px; }
    .section-title { margin: 20px 0 10px; font-size: 1.05rem; font-weight: 700; }
    table { width: 100%; border-collapse: collapse; font-size: 0.9rem; }
    th, td { padding: 10px; border-bottom: 1px solid var(--border); text-align: left; }
    th { color: var(--muted); font-weight: 600; }
    .boundary { text-decoration: underline; color: var(--accent); font-weight: 700; }
    canvas { width: 100%; display: block; }
    .hidden { display: none; }
    .row { display: flex; gap: 12px; align-items: center; }
  </style>
</head>
<body>
  <div class="container">
    <div class="row">
      <div>
        <h1 id="title">PBR Switch Dashboard</h1>
        <div class="subtitle" id="updatedAt">Loading...</div>
      </div>
      <button class="action" id="refreshButton">Refresh data</button>
    </div>
    <div class="tabs">
      <button class="tab active" data-tab="valuation">Valuation &amp; distribution</button>
      <button class="tab" data-tab="backtest">Strategy backtest</button>
    </div>
    <div class="error" id="errorBox"></div>

    <div id="tab-valuation">
      <div class="grid" id="kpis"></div>

      <div class="section-title">PBR distribution (historical share of time)</div>
      <div class="card"><canvas id="distChart" width="1000" height="260"></canvas></div>

      <div class="section-title">PBR price ladder</div>
      <div class="card">
        <table>
          <thead><tr><th>PBR multiple</th><th>Price</th><th>Zone</th></tr></thead>
          <tbody id="targetsBody"></tbody>
        </table>
      </div>

      <div class="section-title">Ad-hoc PBR lookup</div>
      <div class="card row">
        <input type="range" id="pbrSlider" style="flex-grow:1" />
        <span id="pbrValue" class="value"></span>
        <span id="pbrPrice" class="value"></span>
      </div>
    </div>

    <div id="tab-backtest" class="hidden">
      <div class="card row">
        <label class="label" for="capitalInput">Initial capital (USD)</label>
        <input type="number" id="capitalInput" />
        <button class="action" id="backtestButton">Run simulation</button>
      </div>
      <div class="subtitle" id="backtestStatus"></div>
      <div class="grid" id="roiCards"></div>
      <div class="section-title">Cumulative value</div>
      <div class="card"><canvas id="backtestChart" width="1000" height="320"></canvas></div>
      <div class="section-title">Narrative</div>
      <div class="card" id="narrative"></div>
    </div>
  </div>

  <script>
    const COLORS = { brk_hold: "#94a3b8", alternate_hold: "#f59e0b", strategy: "#4f46e5" };
    let current = null;

    function fmtUsd(v) { return `$${Number(v || 0).toLocaleString(undefined, {maximumFractionDigits: 2})}`; }
    function card(label, value, sub="", cls="") {
      return `<div class="card"><div class="label">${label}</div><div class="value ${cls}">${value}</div><div class="sub">${sub}</div></div>`;
    }

    function render(data) {
      current = data;
      document.getElementById("updatedAt").textContent = `Updated: ${data.generated_at}`;
      document.getElementById("errorBox").textContent = data.state.error || "";

      const v = data.valuation;
      if (v) {
        document.getElementById("kpis").innerHTML = [
          card("Shareholders' equity", `$${(v.total_equity_millions / 1000).toFixed(2)}B`, `as of ${v.as_of}`),
          card("Class B book value / share", fmtUsd(v.book_value_per_share_class_b), "Equity / (A shares x 1500)"),
          card("Current price", fmtUsd(v.current_price), `Current PBR: ${v.current_pbr === null ? "n/a" : v.current_pbr.toFixed(2)}`),
          card("Recommendation", v.zone_label, "", `zone-${v.zone}`),
        ].join("");
        document.getElementById("targetsBody").innerHTML = v.targets.map((t) => `<tr>
            <td class="${t.is_boundary ? "boundary" : ""}">${t.multiplier.toFixed(2)}x</td>
            <td>${fmtUsd(t.price)}</td>
            <td class="zone-${t.zone}">${t.zone_label}</td>
          </tr>`).join("");
      }

      drawBars(document.getElementById("distChart"), data.distribution);

      const slider = document.getElementById("pbrSlider");
      if (!slider.dataset.ready) {
        slider.min = data.slider.min; slider.max = data.slider.max; slider.step = data.slider.step;
        slider.value = data.slider.value; slider.dataset.ready = "1";
        document.getElementById("capitalInput").value = data.initial_capital;
      }
      updateSlider();

      const bt = data.backtest;
      document.getElementById("backtestStatus").textContent =
        data.state.backtest_loading ? data.messages.loading_backtest : (data.state.backtest_error || "");
      if (bt) {
        document.getElementById("roiCards").innerHTML = bt.strategies.map((s) =>
          card(s.name, `${s.roi >= 0 ? "+" : ""}${s.roi}%`, "", "")
        ).join("") + card("Trades", String(bt.num_trades), `Optimal band ${bt.optimal_buy_pbr} / ${bt.optimal_sell_pbr}`);
        document.getElementById("narrative").textContent = bt.description;
        drawLines(document.getElementById("backtestChart"), data.chart_rows, bt.strategies);
      }
    }

    function updateSlider() {
      const slider = document.getElementById("pbrSlider");
      const pbr = Number(slider.value);
      document.getElementById("pbrValue").textContent = `${pbr.toFixed(2)}x`;
      const bvps = current && current.valuation ? current.valuation.book_value_per_share_class_b : 0;
      document.getElementById("pbrPrice").textContent = fmtUsd(bvps * pbr);
    }

    function frame(canvas) {
      const ctx = canvas.getContext("2d");
      ctx.clearRect(0, 0, canvas.width, canvas.height);
      return ctx;
    }

    function drawBars(canvas, buckets) {
      const ctx = frame(canvas);
      if (!buckets.length) return;
      const pad = 30, w = canvas.width - pad * 2, h = canvas.height - pad * 2;
      const maxVal = Math.max(1, ...buckets.map((b) => b.percentage_of_time));
      const slot = w / buckets.length;
      buckets.forEach((b, i) => {
        const bh = (b.percentage_of_time / maxVal) * h;
        ctx.fillStyle = b.range_label.includes("< ") ? "#10b981"
          : b.range_label.includes("> ") ? "#f43f5e"
          : (b.range_label.includes("1.4") || b.range_label.includes("1.5")) ? "#4f46e5" : "#94a3b8";
        ctx.fillRect(pad + i * slot + slot * 0.15, pad + h - bh, slot * 0.7, bh);
        ctx.fillStyle = "#64748b";
        ctx.font = "12px sans-serif";
        ctx.fillText(b.range_label, pad + i * slot + slot * 0.2, canvas.height - 8);
        ctx.fillText(`${b.percentage_of_time}%`, pad + i * slot + slot * 0.4, pad + h - bh - 6);
      });
    }

    function drawLines(canvas, rows, strategies) {
      const ctx = frame(canvas);
      if (!rows.length) return;
      const pad = 50, w = canvas.width - pad * 2, h = canvas.height - pad * 2;
      const values = rows.flatMap((r) => strategies.map((s) => r[s.key]));
      const maxVal = Math.max(...values), minVal = Math.min(0, ...values);
      const span = Math.max(1, maxVal - minVal);
      strategies.forEach((s, si) => {
        ctx.strokeStyle = COLORS[s.key] || "#0f172a";
        ctx.lineWidth = s.key === "strategy" ? 3 : 2;
        ctx.beginPath();
        rows.forEach((r, i) => {
          const x = pad + (i / Math.max(1, rows.length - 1)) * w;
          const y = pad + h - ((r[s.key] - minVal) / span) * h;
          if (i === 0) ctx.moveTo(x, y); else ctx.lineTo(x, y);
        });
        ctx.stroke();
        ctx.fillStyle = ctx.strokeStyle;
        ctx.fillText(s.name, pad + 10, pad + 14 * (si + 1));
      });
      ctx.fillStyle = "#64748b";
      rows.forEach((r, i) => ctx.fillText(r.label, pad + (i / Math.max(1, rows.length - 1)) * w - 12, canvas.height - 10));
      ctx.fillText(`$${(maxVal / 1000).toFixed(0)}k`, 4, pad);
    }

    async function call(path, options) {
      try {
        const res = await fetch(path, options);
        render(await res.json());
      } catch (_) {
        document.getElementById("errorBox").textContent = "Dashboard error: could not fetch data";
      }
    }

    document.querySelectorAll(".tab").forEach((btn) => btn.addEventListener("click", () => {
      document.querySelectorAll(".tab").forEach((b) => b.classList.remove("active"));
      btn.classList.add("active");
      const tab = btn.dataset.tab;
      document.getElementById("tab-valuation").classList.toggle("hidden", tab !== "valuation");
      document.getElementById("tab-backtest").classList.toggle("hidden", tab !== "backtest");
      if (tab === "backtest" && current && !current.backtest) runBacktest();
    }));

    function runBacktest() {
      document.getElementById("backtestStatus").textContent = current ? current.messages.loading_backtest : "";
      const capital = Number(document.getElementById("capitalInput").value);
      call("/api/backtest", { method: "POST", headers: {"Content-Type": "application/json"}, body: JSON.stringify({initial_capital: capital}) });
    }

    document.getElementById("pbrSlider").addEventListener("input", updateSlider);
    document.getElementById("backtestButton").addEventListener("click", runBacktest);
    document.getElementById("refreshButton").addEventListener("click", () => {
      document.getElementById("updatedAt").textContent = current ? current.messages.loading_snapshot : "Loading...";
      call("/api/refresh", { method: "POST" });
    });

    call("/api/state").then(() => { if (current && !current.valuation) call("/api/refresh", { method: "POST" }); });
  </script>
</body>
</html>
"""


def _finite(value: float) -> float | None:
    # JSON has no inf/nan; an unusable denominator renders as null.
    return value if math.isfinite(value) else None


def _parse_finite(raw: Any) -> float | None:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _json_safe(value: Any) -> Any:
    if isinstance(value, float):
        return _finite(value)
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_json_safe(v) for v in value]
    return value


def build_dashboard_payload(
    orchestrator: AnalysisOrchestrator,
    settings: Settings,
    custom_pbr: float | None = None,
) -> dict[str, Any]:
    """Serialize the orchestrator's view state for the web page."""
    now = datetime.now(timezone.utc)
    state = orchestrator.state
    locale = orchestrator.locale
    alternate = orchestrator.alternate_ticker
    pbr = custom_pbr
    if pbr is None or not math.isfinite(pbr):
        pbr = settings.dashboard.default_custom_pbr

    payload: dict[str, Any] = {
        "generated_at": now.strftime("%Y-%m-%d %H:%M:%S UTC"),
        "ticker": orchestrator.ticker,
        "alternate_ticker": alternate,
        "state": {
            "loading": state.loading,
            "backtest_loading": state.backtest_loading,
            "error": state.error,
            "backtest_error": state.backtest_error,
        },
        "valuation": None,
        "distribution": [b.model_dump() for b in state.distribution],
        "backtest": _json_safe(state.backtest.model_dump()) if state.backtest else None,
        "chart_rows": _json_safe(orchestrator.chart_rows()),
        "initial_capital": settings.dashboard.initial_capital,
        "slider": {
            "min": settings.dashboard.slider_min,
            "max": settings.dashboard.slider_max,
            "step": settings.dashboard.slider_step,
            "value": pbr,
        },
        "messages": {
            "loading_snapshot": message(
                "loading.snapshot",
                locale,
                ticker=orchestrator.ticker,
                years=settings.strategy.distribution_years,
            ),
            "loading_backtest": message(
                "loading.backtest", locale, ticker=orchestrator.ticker, alternate=alternate
            ),
        },
    }

    view = orchestrator.valuation_view()
    if view is not None:
        payload["valuation"] = {
            "total_equity_millions": _finite(view.snapshot.total_equity_millions),
            "current_price": _finite(view.snapshot.current_price),
            "as_of": view.snapshot.as_of,
            "source_url": view.snapshot.source_url,
            "is_fallback": view.snapshot.is_fallback,
            "book_value_per_share_class_a": _finite(view.valuation.book_value_per_share_class_a),
            "book_value_per_share_class_b": _finite(view.valuation.book_value_per_share_class_b),
            "current_pbr": _finite(view.current_pbr),
            "zone": view.zone.value,
            "zone_label": zone_label(view.zone, locale, alternate),
            "custom_price": _finite(implied_price(view.valuation, pbr)),
            "targets": [
                {
                    "multiplier": t.multiplier,
                    "price": _finite(t.price),
                    "zone": t.zone.value,
                    "zone_label": zone_label(t.zone, locale, alternate),
                    "is_boundary": t.is_boundary,
                }
                for t in view.targets
            ],
        }

    return payload


class DashboardHTTPServer(ThreadingHTTPServer):
    """HTTP server carrying the orchestrator and its event loop."""

    def __init__(
        self,
        server_address: tuple[str, int],
        orchestrator: AnalysisOrchestrator,
        settings: Settings,
        client: GeminiClient | None = None,
    ) -> None:
        super().__init__(server_address, DashboardHandler)
        self.orchestrator = orchestrator
        self.settings = settings
        self.client = client
        self.loop = asyncio.new_event_loop()
        ready = threading.Event()
        self.loop.call_soon(ready.set)
        self._loop_thread = threading.Thread(target=self.loop.run_forever, daemon=True)
        self._loop_thread.start()
        ready.wait(timeout=5)

    def run(self, coro: Any) -> Any:
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result()

    def server_close(self) -> None:
        super().server_close()
        if self.loop.is_running():
            if self.client is not None:
                # The client's connection pool belongs to this loop.
                try:
                    self.run(self.client.close())
                except Exception as e:
                    logger.warning(f"Failed to close LLM client: {e}")
            self.loop.call_soon_threadsafe(self.loop.stop)
            self._loop_thread.join(timeout=5)
        self.loop.close()


class DashboardHandler(BaseHTTPRequestHandler):
    """Serve the dashboard page and JSON API."""

    server: DashboardHTTPServer

    def do_GET(self) -> None:  # noqa: N802 (BaseHTTPRequestHandler signature)
        parsed = urlparse(self.path)

        if parsed.path == "/":
            self._send_html(DASHBOARD_HTML)
            return

        if parsed.path == "/api/state":
            self._send_state()
            return

        if parsed.path == "/api/target":
            query = parse_qs(parsed.query)
            pbr = _parse_finite(query.get("pbr", [""])[0])
            if pbr is None:
                self._send_json({"error": "pbr must be a finite number"}, HTTPStatus.BAD_REQUEST)
                return
            self._send_state(custom_pbr=pbr)
            return

        self.send_error(HTTPStatus.NOT_FOUND, "Not Found")

    def do_POST(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)

        if parsed.path == "/api/refresh":
            self.server.run(self.server.orchestrator.refresh_snapshot())
            self._send_state()
            return

        if parsed.path == "/api/backtest":
            body = self._read_json()
            capital = body.get("initial_capital", self.server.settings.dashboard.initial_capital)
            capital = _parse_finite(capital)
            if capital is None or capital <= 0:
                self._send_json(
                    {"error": "initial_capital must be a positive number"}, HTTPStatus.BAD_REQUEST
                )
                return
            self.server.run(self.server.orchestrator.run_backtest(capital))
            self._send_state()
            return

        self.send_error(HTTPStatus.NOT_FOUND, "Not Found")

    def log_message(self, fmt: str, *args: Any) -> None:
        logger.debug(f"web-dashboard: {fmt % args}")

    def _read_json(self) -> dict[str, Any]:
        length = int(self.headers.get("Content-Length") or 0)
        if not length:
            return {}
        try:
            payload = json.loads(self.rfile.read(length))
        except json.JSONDecodeError:
            return {}
        return payload if isinstance(payload, dict) else {}

    def _send_state(self, custom_pbr: float | None = None) -> None:
        payload = build_dashboard_payload(self.server.orchestrator, self.server.settings, custom_pbr)
        self._send_json(payload)

    def _send_html(self, body: str) -> None:
        raw = body.encode("utf-8")
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)

    def _send_json(self, payload: dict[str, Any], status: HTTPStatus = HTTPStatus.OK) -> None:
        raw = json.dumps(payload, allow_nan=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Cache-Control", "no-store")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


def run_web_dashboard(
    orchestrator: AnalysisOrchestrator,
    settings: Settings,
    host: str | None = None,
    port: int | None = None,
    client: GeminiClient | None = None,
) -> None:
    """Run the local web dashboard and open the browser; ``client`` is closed on exit."""
    host = host or settings.dashboard.host
    port = port or settings.dashboard.port
    server = DashboardHTTPServer((host, port), orchestrator, settings, client=client)
    url = f"http://{host}:{port}"

    logger.info(f"Starting web dashboard at {url}")

    if settings.dashboard.open_browser:
        threading.Thread(target=lambda: webbrowser.open(url), daemon=True).start()

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Web dashboard stopped by user")
    finally:
        server.server_close()
