"""
kpi/financial_close.py

Financial close KPI formula implementation.

Expected inputs
---------------
filtered : Sequence[FinancialCloseRecord]
    Records inside the active date/region/department filter.
all : Sequence[FinancialCloseRecord]
    Every fetched record, used for period-over-period trends.

Formulas
--------
Avg Close Days        = mean(close_days) over filtered records
Avg Automation Rate   = mean(automation_rate) over filtered records
Reconciliation Items  = sum(reconciliation_items) over filtered records
Close Days Trend      = (avg(latest period) - avg(prior period)) / avg(prior period) * 100
Automation Trend      = same two-period comparison on automation_rate

Trends are computed on the unfiltered collection so that narrowing the
filter never hides the direction of travel.  Empty inputs yield ``0.0``.
"""

from __future__ import annotations

from typing import Any, Sequence

from app.domain.records import FinancialCloseRecord
from kpi.base import BaseKPIFormula
from kpi.trends import bucket_trend, safe_mean


class FinancialCloseKPIFormula(BaseKPIFormula):
    """
    Deterministic close-cycle KPIs with zero-safe means.
    """

    def calculate(self, inputs: dict[str, Any]) -> dict[str, float | int]:
        filtered: Sequence[FinancialCloseRecord] = inputs.get("filtered", ())
        everything: Sequence[FinancialCloseRecord] = inputs.get("all", ())

        close_trend = bucket_trend(everything, key=_period, value=lambda r: r.close_days)
        automation_trend = bucket_trend(everything, key=_period, value=lambda r: r.automation_rate)

        return {
            "avg_close_days": safe_mean(r.close_days for r in filtered),
            "close_days_trend": close_trend.change_pct,
            "avg_automation_rate": safe_mean(r.automation_rate for r in filtered),
            "automation_trend": automation_trend.change_pct,
            "total_reconciliation_items": sum(r.reconciliation_items for r in filtered),
        }


def _period(record: FinancialCloseRecord) -> str:
    return record.period
