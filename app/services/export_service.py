"""
app/services/export_service.py

Flat delimited export of the filtered collections.

The artifact has two labelled sections with fixed column headers:

    === FINANCIAL CLOSE METRICS ===
    Period,Close Days,Automation Rate,Reconciliation Items,Region,Department,Created At
    ...

    === PROCESS EFFICIENCY ===
    Process Name,Cycle Time (hrs),Error Rate (%),Cost,Date,Category,Status,Created At
    ...

Numbers are written in their shortest form (``5`` rather than ``5.0``)
and only the process name is quoted.  No transformation logic lives in
the router or CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from app.domain.records import FinancialCloseRecord, ProcessEfficiencyRecord

FINANCIAL_SECTION = "=== FINANCIAL CLOSE METRICS ==="
FINANCIAL_HEADER = (
    "Period,Close Days,Automation Rate,Reconciliation Items,Region,Department,Created At"
)
PROCESS_SECTION = "=== PROCESS EFFICIENCY ==="
PROCESS_HEADER = (
    "Process Name,Cycle Time (hrs),Error Rate (%),Cost,Date,Category,Status,Created At"
)
EXPORT_CONTENT_TYPE = "text/csv; charset=utf-8"


class ExportUnavailableError(ValueError):
    """
    Raised when an export is requested while both collections are empty.
    """


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    content: str

    @property
    def content_bytes(self) -> bytes:
        return self.content.encode("utf-8")


def format_number(value: float | int) -> str:
    """Shortest textual form; integral floats drop their fractional part."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def export_filename(today: date | None = None) -> str:
    return f"CFO_Dashboard_Export_{(today or date.today()).isoformat()}.csv"


def _financial_line(row: FinancialCloseRecord) -> str:
    return ",".join(
        (
            row.period,
            format_number(row.close_days),
            format_number(row.automation_rate),
            format_number(row.reconciliation_items),
            row.region,
            row.department,
            row.created_at,
        )
    )


def _process_line(row: ProcessEfficiencyRecord) -> str:
    return ",".join(
        (
            f'"{row.process_name}"',
            format_number(row.cycle_time),
            format_number(row.error_rate),
            format_number(row.cost),
            row.date,
            row.category,
            row.status,
            row.created_at,
        )
    )


def render_export(
    financial: Sequence[FinancialCloseRecord],
    process: Sequence[ProcessEfficiencyRecord],
) -> str:
    """
    Render both sections; raises :class:`ExportUnavailableError` if both are empty.
    """
    if not financial and not process:
        raise ExportUnavailableError("Nothing to export: both collections are empty.")

    lines = [FINANCIAL_SECTION, FINANCIAL_HEADER]
    lines.extend(_financial_line(row) for row in financial)
    lines.extend(["", PROCESS_SECTION, PROCESS_HEADER])
    lines.extend(_process_line(row) for row in process)
    return "\n".join(lines) + "\n"


def build_export(
    financial: Sequence[FinancialCloseRecord],
    process: Sequence[ProcessEfficiencyRecord],
    *,
    today: date | None = None,
) -> ExportArtifact:
    return ExportArtifact(filename=export_filename(today), content=render_export(financial, process))
