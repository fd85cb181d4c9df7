from pbr_switch.dashboard.web import (
    DashboardHTTPServer,
    build_dashboard_payload,
    run_web_dashboard,
)

__all__ = [
    "DashboardHTTPServer",
    "build_dashboard_payload",
    "run_web_dashboard",
]
