"""
app/services/kpi_service.py

Deterministic dashboard KPI aggregation.

The service combines the financial close and process efficiency formulas
into one :class:`KPIResult`.  Means and sums run over the *filtered*
collections; period-over-period trends run over the *unfiltered*
collections.  No I/O happens here: callers pass already-fetched records,
and a collection that failed to load is simply passed as empty.

Formulas
--------
Close Days Trend    = (latest period avg - prior period avg) / prior period avg * 100
Automation Trend    = same comparison on automation_rate
Error Rate Change   = same comparison on error_rate, bucketed by year-month
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from app.domain.records import FinancialCloseRecord, ProcessEfficiencyRecord
from kpi.financial_close import FinancialCloseKPIFormula
from kpi.process_efficiency import ProcessEfficiencyKPIFormula

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output dataclass
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KPIResult:
    """
    Derived dashboard KPIs; recomputed on every relevant change, never persisted.

    Trend fields are percentages and may be negative.
    """

    avg_close_days: float = 0.0
    close_days_trend: float = 0.0
    avg_automation_rate: float = 0.0
    automation_trend: float = 0.0
    error_rate_change: float = 0.0
    current_month_avg_error: float = 0.0
    prev_month_avg_error: float = 0.0
    total_reconciliation_items: int = 0
    avg_cycle_time: float = 0.0
    avg_error_rate: float = 0.0
    total_cost: float = 0.0
    optimal_processes: int = 0
    critical_processes: int = 0

    computed_at: datetime = field(
        default_factory=lambda: datetime.now(tz=timezone.utc),
        compare=False,
    )
    """UTC timestamp of when the result was produced."""

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["computed_at"] = self.computed_at.isoformat()
        return payload


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class KPIService:
    """
    Stateless KPI aggregator.

    Usage::

        service = KPIService()
        kpis = service.compute(
            filtered_financial=view.financial,
            filtered_process=view.process,
            all_financial=financial,
            all_process=process,
        )
        print(kpis.avg_close_days)
    """

    def __init__(self) -> None:
        self._close_formula = FinancialCloseKPIFormula()
        self._process_formula = ProcessEfficiencyKPIFormula()

    def compute(
        self,
        *,
        filtered_financial: Sequence[FinancialCloseRecord],
        filtered_process: Sequence[ProcessEfficiencyRecord],
        all_financial: Sequence[FinancialCloseRecord],
        all_process: Sequence[ProcessEfficiencyRecord],
    ) -> KPIResult:
        """
        Compute every dashboard KPI.

        Parameters
        ----------
        filtered_financial, filtered_process:
            Collections after the active filter criteria were applied.
        all_financial, all_process:
            Full fetched collections, used for trend buckets.

        Returns
        -------
        KPIResult
            All fields ``0``/``0.0`` when every input is empty.
        """
        close_metrics = self._close_formula.calculate(
            {"filtered": filtered_financial, "all": all_financial}
        )
        process_metrics = self._process_formula.calculate(
            {"filtered": filtered_process, "all": all_process}
        )
        result = KPIResult(**close_metrics, **process_metrics)
        logger.debug(
            "KPIs computed financial=%d/%d process=%d/%d avg_close_days=%.4f close_trend=%.4f",
            len(filtered_financial),
            len(all_financial),
            len(filtered_process),
            len(all_process),
            result.avg_close_days,
            result.close_days_trend,
        )
        return result
