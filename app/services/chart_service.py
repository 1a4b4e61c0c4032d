"""
app/services/chart_service.py

Chart-ready projections of the filtered collections.

Every function is pure and returns plain dicts with JSON-safe values, so
the presentation layer can feed them directly into a chart or table.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Sequence

from app.domain.records import FinancialCloseRecord, ProcessEfficiencyRecord, normalize_status
from kpi.trends import group_by_key, safe_mean

PROCESS_CHART_LIMIT = 8
PROCESS_TABLE_LIMIT = 10
PROCESS_NAME_MAX_CHARS = 15
UNCATEGORIZED = "Other"


def close_trend_by_period(records: Sequence[FinancialCloseRecord]) -> list[dict[str, Any]]:
    """Mean close days per period, oldest period first."""
    groups = group_by_key(records, lambda r: r.period)
    return [
        {
            "period": period,
            "avg_close_days": round(safe_mean(r.close_days for r in groups[period]), 1),
        }
        for period in sorted(groups)
    ]


def department_averages(records: Sequence[FinancialCloseRecord]) -> list[dict[str, Any]]:
    """Mean close days per department in first-seen order."""
    groups = group_by_key(records, lambda r: r.department)
    return [
        {"department": department, "avg_close_days": safe_mean(r.close_days for r in rows)}
        for department, rows in groups.items()
    ]


def financial_close_series(records: Sequence[FinancialCloseRecord]) -> list[dict[str, Any]]:
    return [
        {
            "period": r.period,
            "close_days": r.close_days,
            "automation_rate": r.automation_rate,
            "reconciliation_items": r.reconciliation_items,
        }
        for r in records
    ]


def _short_name(name: str) -> str:
    if len(name) > PROCESS_NAME_MAX_CHARS:
        return name[:PROCESS_NAME_MAX_CHARS] + "..."
    return name


def process_efficiency_bars(records: Sequence[ProcessEfficiencyRecord]) -> list[dict[str, Any]]:
    """First eight processes with a display name truncated for axis labels."""
    return [
        {
            "name": _short_name(r.process_name),
            "full_name": r.process_name,
            "cycle_time": r.cycle_time,
            "error_rate": r.error_rate,
            "cost": r.cost,
            "status": r.status,
        }
        for r in records[:PROCESS_CHART_LIMIT]
    ]


def cost_by_category(records: Sequence[ProcessEfficiencyRecord]) -> list[dict[str, Any]]:
    """Total cost per category rounded to whole currency units."""
    totals: dict[str, float] = defaultdict(float)
    for r in records:
        totals[r.category or UNCATEGORIZED] += r.cost
    return [{"name": name, "value": round(total)} for name, total in totals.items()]


def category_efficiency(records: Sequence[ProcessEfficiencyRecord]) -> list[dict[str, Any]]:
    """
    Mean cycle time and error rate per category over completed processes,
    slowest category first.
    """
    completed = [r for r in records if normalize_status(r.status) == "completed"]
    groups = group_by_key(completed, lambda r: r.category or UNCATEGORIZED)
    rows = [
        {
            "category": category,
            "avg_cycle_time": round(safe_mean(r.cycle_time for r in items), 1),
            "avg_error_rate": round(safe_mean(r.error_rate for r in items), 2),
        }
        for category, items in groups.items()
    ]
    return sorted(rows, key=lambda row: row["avg_cycle_time"], reverse=True)


def process_table(records: Sequence[ProcessEfficiencyRecord]) -> list[dict[str, Any]]:
    return [
        {
            "id": r.id,
            "process_name": r.process_name,
            "category": r.category,
            "cycle_time": r.cycle_time,
            "error_rate": r.error_rate,
            "cost": r.cost,
            "status": r.status,
        }
        for r in records[:PROCESS_TABLE_LIMIT]
    ]
