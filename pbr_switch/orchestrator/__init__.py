from pbr_switch.orchestrator.analysis import (
    AnalysisOrchestrator,
    ValuationView,
    project_for_chart,
)

__all__ = [
    "AnalysisOrchestrator",
    "ValuationView",
    "project_for_chart",
]
