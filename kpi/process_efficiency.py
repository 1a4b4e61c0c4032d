"""
kpi/process_efficiency.py

Process efficiency KPI formula implementation.

Expected inputs
---------------
filtered : Sequence[ProcessEfficiencyRecord]
    Records inside the active date filter.
all : Sequence[ProcessEfficiencyRecord]
    Every fetched record, used for the month-over-month error comparison.

Formulas
--------
Avg Cycle Time      = mean(cycle_time) over filtered records
Avg Error Rate      = mean(error_rate) over filtered records
Total Cost          = sum(cost) over filtered records
Optimal Processes   = count(status == "completed")
Critical Processes  = count(status == "in progress")
Error Rate Change   = month-over-month % change of mean error_rate, where a
                      month is the leading ``YYYY-MM`` of ``date``
"""

from __future__ import annotations

from typing import Any, Sequence

from app.domain.records import ProcessEfficiencyRecord, normalize_status
from kpi.base import BaseKPIFormula
from kpi.trends import bucket_trend, safe_mean

STATUS_OPTIMAL = "completed"
STATUS_CRITICAL = "in progress"


class ProcessEfficiencyKPIFormula(BaseKPIFormula):
    """
    Deterministic process KPIs with zero-safe means.
    """

    def calculate(self, inputs: dict[str, Any]) -> dict[str, float | int]:
        filtered: Sequence[ProcessEfficiencyRecord] = inputs.get("filtered", ())
        everything: Sequence[ProcessEfficiencyRecord] = inputs.get("all", ())

        error_trend = bucket_trend(everything, key=year_month, value=lambda r: r.error_rate)

        return {
            "avg_cycle_time": safe_mean(r.cycle_time for r in filtered),
            "avg_error_rate": safe_mean(r.error_rate for r in filtered),
            "total_cost": sum(r.cost for r in filtered),
            "optimal_processes": _count_status(filtered, STATUS_OPTIMAL),
            "critical_processes": _count_status(filtered, STATUS_CRITICAL),
            "error_rate_change": error_trend.change_pct,
            "current_month_avg_error": error_trend.current_avg,
            "prev_month_avg_error": error_trend.previous_avg,
        }


def year_month(record: ProcessEfficiencyRecord) -> str:
    """Leading ``YYYY-MM`` of the record date."""
    return record.date[:7]


def _count_status(records: Sequence[ProcessEfficiencyRecord], status: str) -> int:
    return sum(1 for r in records if normalize_status(r.status) == status)
