"""
app/domain/records.py

Typed rows fetched from the tabular record store.

Both record types are immutable once fetched. Rows arrive as plain JSON
objects whose numeric columns may be encoded as strings; ``from_row``
coerces them and raises :class:`RecordParseError` when a required column
is missing or not numeric.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping


class RecordParseError(ValueError):
    """
    Raised when a store row cannot be mapped to a typed record.
    """


def _require_float(row: Mapping[str, Any], column: str) -> float:
    value = row.get(column)
    if value is None or isinstance(value, bool):
        raise RecordParseError(f"column '{column}' is missing")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise RecordParseError(f"column '{column}' is not numeric: {value!r}") from exc
    if not math.isfinite(number):
        raise RecordParseError(f"column '{column}' is not finite: {value!r}")
    return number


def _require_int(row: Mapping[str, Any], column: str) -> int:
    number = _require_float(row, column)
    if not number.is_integer():
        raise RecordParseError(f"column '{column}' is not an integer: {row.get(column)!r}")
    return int(number)


def _text(row: Mapping[str, Any], column: str) -> str:
    value = row.get(column)
    return "" if value is None else str(value).strip()


@dataclass(frozen=True)
class FinancialCloseRecord:
    """
    One financial close observation for a period, region and department.
    """

    id: str
    period: str
    close_days: float
    automation_rate: float
    reconciliation_items: int
    region: str
    department: str
    created_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "FinancialCloseRecord":
        if not isinstance(row, Mapping):
            raise RecordParseError("row must be a JSON object")
        return cls(
            id=_text(row, "id"),
            period=_text(row, "period"),
            close_days=_require_float(row, "close_days"),
            automation_rate=_require_float(row, "automation_rate"),
            reconciliation_items=_require_int(row, "reconciliation_items"),
            region=_text(row, "region"),
            department=_text(row, "department"),
            created_at=_text(row, "created_at"),
        )


@dataclass(frozen=True)
class ProcessEfficiencyRecord:
    """
    One process run with its cycle time, error rate and monthly cost.
    """

    id: str
    process_name: str
    cycle_time: float
    error_rate: float
    cost: float
    date: str
    category: str
    status: str
    created_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ProcessEfficiencyRecord":
        if not isinstance(row, Mapping):
            raise RecordParseError("row must be a JSON object")
        process_name = _text(row, "process_name")
        if not process_name:
            raise RecordParseError("column 'process_name' is missing")
        return cls(
            id=_text(row, "id"),
            process_name=process_name,
            cycle_time=_require_float(row, "cycle_time"),
            error_rate=_require_float(row, "error_rate"),
            cost=_require_float(row, "cost"),
            date=_text(row, "date"),
            category=_text(row, "category"),
            status=_text(row, "status"),
            created_at=_text(row, "created_at"),
        )


def normalize_status(status: str) -> str:
    """
    Fold a process status into its comparison form (``"in-progress"`` -> ``"in progress"``).
    """

    return " ".join(status.replace("-", " ").replace("_", " ").lower().split())
