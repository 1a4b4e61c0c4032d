"""
app/services package marker.
"""

from app.services.dashboard_session import DashboardSession, RefreshResult
from app.services.export_service import ExportArtifact, ExportUnavailableError, build_export
from app.services.filter_engine import FilterCriteria, FilteredView, apply_filters
from app.services.insight_composer import InsightBundle, InsightComposer, QueryOutcome, QueryStatus
from app.services.kpi_service import KPIResult, KPIService

__all__ = [
    "DashboardSession",
    "RefreshResult",
    "ExportArtifact",
    "ExportUnavailableError",
    "build_export",
    "FilterCriteria",
    "FilteredView",
    "apply_filters",
    "InsightBundle",
    "InsightComposer",
    "QueryOutcome",
    "QueryStatus",
    "KPIResult",
    "KPIService",
]
