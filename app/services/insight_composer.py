"""
app/services/insight_composer.py

Builds narrative-generation requests from aggregated data and dispatches them.

Automated insights
------------------
``close_performance``, ``automation`` and ``anomaly`` are requested
concurrently (fan-out/fan-in).  Each call succeeds or falls back on its
own; one failure never cancels or alters the others.  The automation
insight short-circuits locally with a canned message when no process
qualifies as a manual-process candidate.

User queries
------------
Checked in this order, all before any network call:

1. blank input is ignored;
2. input shorter than the minimum length gets a canned "be more specific"
   reply and does not consume the rate-limit window;
3. a query arriving within the minimum interval of the last accepted one
   is rejected with a warning and leaves the transcript untouched.

An accepted query appends the user turn immediately and exactly one
assistant turn on completion (answer or apology).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Sequence

from app.connectors.narrative_client import NarrativeClient
from app.domain.dashboard import ChatTranscript, InsightData, InsightStatus, Recommendation
from app.domain.records import FinancialCloseRecord, ProcessEfficiencyRecord
from app.logging_utils import log_event
from app.services.chart_service import department_averages
from app.services.rate_limiter import MinimumIntervalLimiter
from anomaly.orchestrator import AnomalyOrchestrator, AnomalyReport
from kpi.trends import group_by_key, latest_bucket_keys, safe_mean
from llm_synthesis.schema import (
    AnomalyPayload,
    AutomationPayload,
    BaselineStats,
    ClosePerformancePayload,
    DepartmentAverage,
    FinancialSample,
    InsightRequest,
    InsightType,
    ManualProcess,
    MonthStats,
    OutlierSample,
    PeriodAverage,
    ProcessSample,
    QueryPayload,
)

logger = logging.getLogger(__name__)
LOG_SCOPE = "insight_composer"

CLOSE_PERFORMANCE_FALLBACK = "Unable to analyze close performance."
AUTOMATION_FALLBACK = "Unable to analyze automation opportunities."
ANOMALY_FALLBACK = "Unable to analyze anomalies."
AUTOMATION_ALL_CLEAR = (
    "All processes are well-automated with low error rates. "
    "Focus on maintaining current performance."
)
SHORT_QUERY_REPLY = (
    "Please be more specific with your question. "
    "Try asking about specific metrics, trends, or comparisons."
)
QUERY_FAILURE_REPLY = "Sorry, I encountered an error processing your question. Please try again."
RATE_LIMIT_WARNING = "Please wait a few seconds before sending another query."
INSIGHTS_FAILURE_MESSAGE = "Failed to generate insights. Please try again."

TREND_PERIODS = 3

_FALLBACKS: dict[InsightType, str] = {
    InsightType.CLOSE_PERFORMANCE: CLOSE_PERFORMANCE_FALLBACK,
    InsightType.AUTOMATION: AUTOMATION_FALLBACK,
    InsightType.ANOMALY: ANOMALY_FALLBACK,
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InsightOutcome:
    insight_type: InsightType
    text: str
    status: InsightStatus
    error: str | None = None


@dataclass(frozen=True)
class InsightBundle:
    """
    Fan-in result of one automated insight run.
    """

    insights: InsightData
    statuses: dict[InsightType, InsightStatus]
    report: AnomalyReport
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def recommendations(self) -> tuple[Recommendation, ...]:
        return self.report.recommendations


class QueryStatus(str, Enum):
    IGNORED = "ignored"
    TOO_SHORT = "too_short"
    RATE_LIMITED = "rate_limited"
    ANSWERED = "answered"
    FAILED = "failed"


@dataclass(frozen=True)
class QueryOutcome:
    status: QueryStatus
    reply: str | None = None
    warning: str | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------


class InsightComposer:
    """
    Composes intent payloads and talks to the narrative endpoint.
    """

    def __init__(
        self,
        client: NarrativeClient,
        *,
        limiter: MinimumIntervalLimiter,
        min_query_length: int = 10,
        query_sample_size: int = 20,
        anomaly: AnomalyOrchestrator | None = None,
    ) -> None:
        self._client = client
        self._limiter = limiter
        self._min_query_length = min_query_length
        self._query_sample_size = query_sample_size
        self._anomaly = anomaly or AnomalyOrchestrator()

    # ------------------------------------------------------------------
    # Request builders
    # ------------------------------------------------------------------

    def build_close_performance_request(
        self,
        financial: Sequence[FinancialCloseRecord],
        *,
        avg_close_days: float,
    ) -> InsightRequest:
        periods = group_by_key(financial, lambda r: r.period)
        trend = [
            PeriodAverage(
                period=period,
                avg_close_days=safe_mean(r.close_days for r in periods[period]),
            )
            for period in latest_bucket_keys(periods, TREND_PERIODS)
        ]
        departments = [DepartmentAverage(**row) for row in department_averages(financial)]
        return InsightRequest(
            type=InsightType.CLOSE_PERFORMANCE,
            data=ClosePerformancePayload(
                avg_close_days=round(avg_close_days, 1),
                department_data=departments,
                trend_data=trend,
            ),
        )

    def build_automation_request(
        self, manual_processes: Sequence[ProcessEfficiencyRecord]
    ) -> InsightRequest | None:
        if not manual_processes:
            return None
        return InsightRequest(
            type=InsightType.AUTOMATION,
            data=AutomationPayload(
                manual_processes=[
                    ManualProcess(process_name=p.process_name, error_rate=p.error_rate, cost=p.cost)
                    for p in manual_processes
                ]
            ),
        )

    def build_anomaly_request(self, report: AnomalyReport) -> InsightRequest:
        baseline = report.baseline
        return InsightRequest(
            type=InsightType.ANOMALY,
            data=AnomalyPayload(
                baseline=BaselineStats(
                    avg_error_rate=round(baseline.avg_error_rate, 2),
                    std_dev=round(baseline.std_dev, 2),
                ),
                current_month=MonthStats(
                    month=baseline.current_month,
                    avg_error_rate=round(baseline.current_month_avg_error, 2),
                ),
                outliers=[
                    OutlierSample(name=o.process_name, error_rate=o.error_rate)
                    for o in report.top_outliers
                ],
            ),
        )

    def build_query_request(
        self,
        query: str,
        *,
        financial: Sequence[FinancialCloseRecord],
        process: Sequence[ProcessEfficiencyRecord],
    ) -> InsightRequest:
        size = self._query_sample_size
        return InsightRequest(
            type=InsightType.QUERY,
            user_query=query.strip(),
            data=QueryPayload(
                financial_data=[
                    FinancialSample(
                        period=r.period,
                        department=r.department,
                        close_days=r.close_days,
                        automation_rate=r.automation_rate,
                    )
                    for r in financial[:size]
                ],
                process_data=[
                    ProcessSample(
                        name=r.process_name,
                        category=r.category,
                        cycle_time=r.cycle_time,
                        error_rate=r.error_rate,
                        cost=r.cost,
                    )
                    for r in process[:size]
                ],
            ),
        )

    # ------------------------------------------------------------------
    # Automated insights
    # ------------------------------------------------------------------

    async def generate_insights(
        self,
        *,
        financial: Sequence[FinancialCloseRecord],
        process: Sequence[ProcessEfficiencyRecord],
        avg_close_days: float,
    ) -> InsightBundle:
        """
        Run the three automated insight requests concurrently.

        Parameters
        ----------
        financial, process:
            Full fetched collections.
        avg_close_days:
            Mean close days over the filtered financial view.
        """
        report = self._anomaly.analyze(process, avg_close_days=avg_close_days)
        automation_request = self.build_automation_request(report.manual_processes)

        async def _automation() -> InsightOutcome:
            if automation_request is None:
                return InsightOutcome(
                    insight_type=InsightType.AUTOMATION,
                    text=AUTOMATION_ALL_CLEAR,
                    status=InsightStatus.SUCCEEDED,
                )
            return await self._request(InsightType.AUTOMATION, lambda: automation_request)

        close_outcome, automation_outcome, anomaly_outcome = await asyncio.gather(
            self._request(
                InsightType.CLOSE_PERFORMANCE,
                lambda: self.build_close_performance_request(financial, avg_close_days=avg_close_days),
            ),
            _automation(),
            self._request(InsightType.ANOMALY, lambda: self.build_anomaly_request(report)),
        )
        outcomes = (close_outcome, automation_outcome, anomaly_outcome)

        log_event(
            logger,
            logging.INFO,
            "insights_generated",
            scope=LOG_SCOPE,
            statuses={o.insight_type.value: o.status.value for o in outcomes},
            outliers=len(report.baseline.outliers),
            recommendations=len(report.recommendations),
        )
        return InsightBundle(
            insights=InsightData(
                close_performance=close_outcome.text,
                automation=automation_outcome.text,
                anomaly=anomaly_outcome.text,
            ),
            statuses={o.insight_type: o.status for o in outcomes},
            report=report,
            errors=tuple(o.error for o in outcomes if o.error),
        )

    async def _request(
        self,
        insight_type: InsightType,
        build: Callable[[], InsightRequest],
    ) -> InsightOutcome:
        try:
            text = await self._client.generate(build())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Insight request failed type=%s: %s", insight_type.value, exc)
            return InsightOutcome(
                insight_type=insight_type,
                text=_FALLBACKS[insight_type],
                status=InsightStatus.FAILED,
                error=str(exc),
            )
        return InsightOutcome(insight_type=insight_type, text=text, status=InsightStatus.SUCCEEDED)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    async def answer_query(
        self,
        query: str,
        *,
        financial: Sequence[FinancialCloseRecord],
        process: Sequence[ProcessEfficiencyRecord],
        transcript: ChatTranscript,
        on_accepted: Callable[[], Awaitable[None] | None] | None = None,
    ) -> QueryOutcome:
        """
        Validate, rate-limit and answer one free-text question.

        ``on_accepted`` runs after the user turn is appended and before the
        network call, so callers can raise a loading flag.
        """
        text = query.strip()
        if not text:
            return QueryOutcome(status=QueryStatus.IGNORED)

        if len(text) < self._min_query_length:
            transcript.append_user(query)
            transcript.append_assistant(SHORT_QUERY_REPLY)
            log_event(logger, logging.INFO, "query_too_short", scope=LOG_SCOPE, length=len(text))
            return QueryOutcome(status=QueryStatus.TOO_SHORT, reply=SHORT_QUERY_REPLY)

        if not self._limiter.try_acquire():
            log_event(
                logger,
                logging.INFO,
                "query_rate_limited",
                scope=LOG_SCOPE,
                retry_in_seconds=round(self._limiter.seconds_remaining(), 2),
            )
            return QueryOutcome(status=QueryStatus.RATE_LIMITED, warning=RATE_LIMIT_WARNING)

        transcript.append_user(query)
        if on_accepted is not None:
            pending = on_accepted()
            if pending is not None:
                await pending

        try:
            request = self.build_query_request(query, financial=financial, process=process)
            reply = await self._client.generate(request)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Query request failed: %s", exc)
            transcript.append_assistant(QUERY_FAILURE_REPLY)
            return QueryOutcome(status=QueryStatus.FAILED, reply=QUERY_FAILURE_REPLY, error=str(exc))

        transcript.append_assistant(reply)
        return QueryOutcome(status=QueryStatus.ANSWERED, reply=reply)
