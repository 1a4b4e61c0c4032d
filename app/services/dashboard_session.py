"""
app/services/dashboard_session.py

Single logical owner of dashboard state.

One :class:`DashboardSession` holds the filter criteria, the fetched
collections, the filtered view and every derived value (KPIs, anomaly
report, recommendations, insights, chat transcript).  Mutations funnel
through one entry point per concern:

- ``set_criteria`` / ``reset_filters`` / ``toggle_*``: filter changes,
  debounced before the pure recomputation runs;
- ``refresh``: re-fetches both collections, fully replacing them;
- ``generate_insights`` / ``send_query``: narrative generation.

Refresh responses are tagged with a monotonically increasing sequence
number and applied only when they belong to the latest issued refresh.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Sequence

from app.config import DashboardSettings, get_dashboard_settings
from app.connectors.record_store import RecordStoreConnector
from app.domain.dashboard import ChatTranscript, InsightData, InsightStatus, Recommendation
from app.domain.records import FinancialCloseRecord, ProcessEfficiencyRecord
from app.logging_utils import log_event
from app.services import chart_service
from app.services.debounce import Debouncer
from app.services.export_service import ExportArtifact, build_export
from app.services.filter_engine import FilterCriteria, FilteredView, apply_filters
from app.services.insight_composer import (
    INSIGHTS_FAILURE_MESSAGE,
    InsightBundle,
    InsightComposer,
    QueryOutcome,
)
from app.services.kpi_service import KPIResult, KPIService
from anomaly.orchestrator import AnomalyOrchestrator, AnomalyReport
from llm_synthesis.schema import InsightType

logger = logging.getLogger(__name__)
LOG_SCOPE = "dashboard_session"

FINANCIAL_COLLECTION = "financial_close"
PROCESS_COLLECTION = "process_efficiency"

_COLLECTION_LABELS = {
    FINANCIAL_COLLECTION: "financial close metrics",
    PROCESS_COLLECTION: "process efficiency data",
}

AUTOMATED_INSIGHTS = (
    InsightType.CLOSE_PERFORMANCE,
    InsightType.AUTOMATION,
    InsightType.ANOMALY,
)


def connection_error_message(collection: str) -> str:
    return f"Connection error: failed to load {_COLLECTION_LABELS[collection]}."


@dataclass(frozen=True)
class RefreshResult:
    """
    Outcome of one :meth:`DashboardSession.refresh` call.
    """

    sequence: int
    applied: bool
    financial_count: int = 0
    process_count: int = 0
    errors: tuple[str, ...] = ()


class DashboardSession:
    """
    Session-scoped dashboard state and its update entry points.

    ``composer`` may be omitted for read-only uses (summary, export); the
    automated insight trigger is then disabled.
    """

    def __init__(
        self,
        *,
        store: RecordStoreConnector,
        composer: InsightComposer | None = None,
        settings: DashboardSettings | None = None,
        kpi_service: KPIService | None = None,
        anomaly: AnomalyOrchestrator | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._composer = composer
        self._settings = settings or get_dashboard_settings()
        self._kpi_service = kpi_service or KPIService()
        self._anomaly = anomaly or AnomalyOrchestrator()
        self._today = today

        self.criteria = self.default_criteria()
        self.financial: tuple[FinancialCloseRecord, ...] = ()
        self.process: tuple[ProcessEfficiencyRecord, ...] = ()
        self.view = FilteredView()
        self.kpis = KPIResult()
        self.anomaly_report: AnomalyReport | None = None
        self.recommendations: tuple[Recommendation, ...] = ()

        self.insights = InsightData()
        self.insight_statuses: dict[InsightType, InsightStatus] = {
            insight_type: InsightStatus.IDLE for insight_type in AUTOMATED_INSIGHTS
        }
        self.insight_errors: tuple[str, ...] = ()
        self.insight_error: str | None = None

        self.transcript = ChatTranscript()
        self.chat_warning: str | None = None

        self.fetch_errors: dict[str, str] = {}
        self.failed_records = 0
        self.last_updated: datetime | None = None
        self.is_loading = False
        self.is_loading_insights = False
        self.is_loading_chat = False

        self._refresh_sequence = 0
        self._filter_debouncer = Debouncer(
            name="filters",
            delay_seconds=self._settings.filter_debounce_seconds,
            callback=self.recompute,
        )
        self._insight_debouncer = Debouncer(
            name="insights",
            delay_seconds=self._settings.insight_debounce_seconds,
            callback=self._auto_generate_insights,
        )

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def default_criteria(self) -> FilterCriteria:
        return FilterCriteria.default(
            today=self._today(),
            window_months=self._settings.default_window_months,
        )

    def set_criteria(self, criteria: FilterCriteria, *, debounce: bool = True) -> None:
        """
        Replace the filter criteria.  With ``debounce`` the recomputation runs
        after the settle delay, and must be called inside a running event loop.
        """
        self.criteria = criteria
        if debounce:
            self._filter_debouncer.trigger()
        else:
            self._filter_debouncer.cancel()
            self.recompute()

    def reset_filters(self, *, debounce: bool = False) -> None:
        self.set_criteria(self.default_criteria(), debounce=debounce)

    def toggle_region(self, region: str, *, debounce: bool = True) -> None:
        self.set_criteria(self.criteria.toggle_region(region), debounce=debounce)

    def toggle_department(self, department: str, *, debounce: bool = True) -> None:
        self.set_criteria(self.criteria.toggle_department(department), debounce=debounce)

    def recompute(self) -> None:
        """Pure recomputation of the filtered view and every derived value."""
        self._publish(self._derive(self.financial, self.process))

    def _derive(
        self,
        financial: tuple[FinancialCloseRecord, ...],
        process: tuple[ProcessEfficiencyRecord, ...],
    ) -> tuple[FilteredView, KPIResult, AnomalyReport]:
        view = apply_filters(self.criteria, financial, process, today=self._today())
        kpis = self._kpi_service.compute(
            filtered_financial=view.financial,
            filtered_process=view.process,
            all_financial=financial,
            all_process=process,
        )
        report = self._anomaly.analyze(process, avg_close_days=kpis.avg_close_days)
        return view, kpis, report

    def _publish(self, derived: tuple[FilteredView, KPIResult, AnomalyReport]) -> None:
        self.view, self.kpis, self.anomaly_report = derived
        self.recommendations = self.anomaly_report.recommendations

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> RefreshResult:
        """
        Fetch both collections concurrently and replace the session data.

        A failed collection is logged, reported in ``fetch_errors`` and
        treated as empty; the other collection still populates.  A response
        superseded by a later refresh is discarded.
        """
        self._refresh_sequence += 1
        sequence = self._refresh_sequence
        self.is_loading = True
        try:
            financial_result, process_result = await asyncio.gather(
                asyncio.to_thread(self._store.fetch_financial_close),
                asyncio.to_thread(self._store.fetch_process_efficiency),
                return_exceptions=True,
            )
        finally:
            if sequence == self._refresh_sequence:
                self.is_loading = False

        if sequence != self._refresh_sequence:
            log_event(
                logger,
                logging.INFO,
                "refresh_discarded",
                scope=LOG_SCOPE,
                sequence=sequence,
                latest=self._refresh_sequence,
            )
            return RefreshResult(sequence=sequence, applied=False)

        errors: dict[str, str] = {}
        failed_records = 0
        financial: tuple[FinancialCloseRecord, ...] = ()
        process: tuple[ProcessEfficiencyRecord, ...] = ()

        if isinstance(financial_result, BaseException):
            errors[FINANCIAL_COLLECTION] = self._fetch_failed(FINANCIAL_COLLECTION, financial_result)
        else:
            financial = tuple(financial_result.records)
            failed_records += financial_result.failed_records

        if isinstance(process_result, BaseException):
            errors[PROCESS_COLLECTION] = self._fetch_failed(PROCESS_COLLECTION, process_result)
        else:
            process = tuple(process_result.records)
            failed_records += process_result.failed_records

        # Nothing is replaced until the derived values exist.
        derived = self._derive(financial, process)
        counts_changed = len(financial) != len(self.financial) or len(process) != len(self.process)
        self.financial = financial
        self.process = process
        self.fetch_errors = errors
        self.failed_records = failed_records
        self.last_updated = datetime.now(tz=timezone.utc)
        self._publish(derived)

        log_event(
            logger,
            logging.INFO,
            "refresh_applied",
            scope=LOG_SCOPE,
            sequence=sequence,
            financial=len(financial),
            process=len(process),
            failed_records=failed_records,
            errors=sorted(errors),
        )

        if counts_changed and self.has_records and self._composer is not None:
            self._insight_debouncer.trigger()

        return RefreshResult(
            sequence=sequence,
            applied=True,
            financial_count=len(financial),
            process_count=len(process),
            errors=tuple(errors.values()),
        )

    @staticmethod
    def _fetch_failed(collection: str, exc: BaseException) -> str:
        if not isinstance(exc, Exception):
            raise exc
        logger.error("Fetch failed collection=%s error=%s", collection, exc)
        return connection_error_message(collection)

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def _require_composer(self) -> InsightComposer:
        if self._composer is None:
            raise RuntimeError("DashboardSession was created without an InsightComposer.")
        return self._composer

    async def _auto_generate_insights(self) -> None:
        await self.generate_insights()

    async def generate_insights(self) -> InsightBundle | None:
        """
        Regenerate the three automated insights from the full collections.

        Returns ``None`` without any request when both collections are empty.
        """
        composer = self._require_composer()
        if not self.has_records:
            return None

        self.is_loading_insights = True
        self.insight_error = None
        self.insight_statuses = {
            insight_type: InsightStatus.REQUESTING for insight_type in AUTOMATED_INSIGHTS
        }
        try:
            bundle = await composer.generate_insights(
                financial=self.financial,
                process=self.process,
                avg_close_days=self.kpis.avg_close_days,
            )
        except Exception:  # noqa: BLE001
            logger.exception("Insight generation failed")
            self.insight_error = INSIGHTS_FAILURE_MESSAGE
            self.insight_statuses = {
                insight_type: InsightStatus.FAILED for insight_type in AUTOMATED_INSIGHTS
            }
            return None
        finally:
            self.is_loading_insights = False

        self.insights = bundle.insights
        self.insight_statuses = dict(bundle.statuses)
        self.insight_errors = bundle.errors
        self.anomaly_report = bundle.report
        self.recommendations = bundle.recommendations
        return bundle

    async def send_query(self, query: str) -> QueryOutcome:
        composer = self._require_composer()
        self.chat_warning = None

        def _accepted() -> None:
            self.is_loading_chat = True

        try:
            outcome = await composer.answer_query(
                query,
                financial=self.financial,
                process=self.process,
                transcript=self.transcript,
                on_accepted=_accepted,
            )
        finally:
            self.is_loading_chat = False

        self.chat_warning = outcome.warning
        return outcome

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    @property
    def has_records(self) -> bool:
        """True when either full collection holds data; gates insight generation."""
        return bool(self.financial or self.process)

    @property
    def can_export(self) -> bool:
        return not self.view.is_empty

    def export(self) -> ExportArtifact:
        """Export artifact of the filtered view; raises ``ExportUnavailableError`` when empty."""
        return build_export(self.view.financial, self.view.process, today=self._today())

    def chart_data(self) -> dict[str, list[dict[str, Any]]]:
        financial: Sequence[FinancialCloseRecord] = self.view.financial
        process: Sequence[ProcessEfficiencyRecord] = self.view.process
        return {
            "close_trend": chart_service.close_trend_by_period(financial),
            "department_averages": chart_service.department_averages(financial),
            "financial_close": chart_service.financial_close_series(financial),
            "process_efficiency": chart_service.process_efficiency_bars(process),
            "cost_by_category": chart_service.cost_by_category(process),
            "category_efficiency": chart_service.category_efficiency(process),
            "process_table": chart_service.process_table(process),
        }

    def summary(self) -> dict[str, Any]:
        return {
            "criteria": {
                "date_from": self.criteria.date_from.isoformat(),
                "date_to": self.criteria.date_to.isoformat(),
                "regions": list(self.criteria.selected_regions),
                "departments": list(self.criteria.selected_departments),
            },
            "kpis": self.kpis.as_dict(),
            "recommendations": [
                {
                    "priority": r.priority,
                    "title": r.title,
                    "description": r.description,
                    "details": r.details,
                }
                for r in self.recommendations
            ],
            "counts": {
                "financial": len(self.financial),
                "process": len(self.process),
                "filtered_financial": len(self.view.financial),
                "filtered_process": len(self.view.process),
                "failed_records": self.failed_records,
            },
            "errors": dict(self.fetch_errors),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def wait_idle(self) -> None:
        """Wait for pending debounced recomputation and insight runs."""
        await self._filter_debouncer.wait()
        await self._insight_debouncer.wait()

    async def close(self) -> None:
        """Cancel pending debounced work, including in-flight insight requests."""
        self._filter_debouncer.cancel()
        self._insight_debouncer.cancel()
        log_event(
            logger, logging.DEBUG, "session_closed", scope=LOG_SCOPE, sequence=self._refresh_sequence
        )
