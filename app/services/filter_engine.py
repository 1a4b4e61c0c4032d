"""
app/services/filter_engine.py

Date-window, region and department filtering for the two record collections.

Rules
-----
- Date bounds are inclusive on both ends; a record dated exactly on
  ``date_from`` or ``date_to`` is kept.  ``date_from > date_to`` yields
  an empty view.
- Financial close records are dated by ``period``; process efficiency
  records by ``date``.  Only the leading ``YYYY-MM-DD`` is considered.
- A record whose date cannot be parsed is treated as dated *today*, so it
  stays visible in any window that reaches the present.
- Region and department constraints apply to financial close records
  only; process records are date-filtered only.
- Each selection holds either its "All ..." sentinel alone or one or more
  specific values, never both and never nothing.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Sequence

from app.domain.records import FinancialCloseRecord, ProcessEfficiencyRecord

logger = logging.getLogger(__name__)

ALL_REGIONS = "All Regions"
ALL_DEPARTMENTS = "All Departments"

REGIONS: tuple[str, ...] = (
    ALL_REGIONS,
    "North America",
    "Europe",
    "Asia Pacific",
    "Latin America",
    "Global",
)

DEPARTMENTS: tuple[str, ...] = (
    ALL_DEPARTMENTS,
    "Accounts Payable",
    "Accounts Receivable",
    "General Ledger",
    "Treasury",
    "Tax",
    "Reporting",
)

DEFAULT_WINDOW_MONTHS = 36


# ---------------------------------------------------------------------------
# Selection helpers
# ---------------------------------------------------------------------------


def normalize_selection(values: Iterable[str], sentinel: str) -> tuple[str, ...]:
    """
    Deduplicate *values* and enforce sentinel exclusivity.

    Specific values win over the sentinel; an empty result becomes
    ``(sentinel,)``.
    """

    specific: list[str] = []
    for raw in values:
        value = raw.strip()
        if value and value != sentinel and value not in specific:
            specific.append(value)
    return tuple(specific) if specific else (sentinel,)


def toggle_selection(selected: Sequence[str], value: str, sentinel: str) -> tuple[str, ...]:
    """
    Apply one click of a multi-select widget to *selected*.

    Choosing the sentinel resets to the sentinel alone; choosing a selected
    specific value removes it; choosing any other value replaces the
    sentinel and is appended.
    """

    if value == sentinel:
        return (sentinel,)
    if value in selected:
        remaining = [s for s in selected if s != value]
    else:
        remaining = [s for s in selected if s != sentinel] + [value]
    return normalize_selection(remaining, sentinel)


def months_before(anchor: date, months: int) -> date:
    """Same day-of-month *months* earlier, clamped to the target month's length."""
    month_index = anchor.year * 12 + (anchor.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor.day, last_day))


# ---------------------------------------------------------------------------
# Criteria
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilterCriteria:
    """
    Active dashboard filter.  Selections are normalized on construction.
    """

    date_from: date
    date_to: date
    selected_regions: tuple[str, ...] = (ALL_REGIONS,)
    selected_departments: tuple[str, ...] = (ALL_DEPARTMENTS,)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "selected_regions", normalize_selection(self.selected_regions, ALL_REGIONS)
        )
        object.__setattr__(
            self,
            "selected_departments",
            normalize_selection(self.selected_departments, ALL_DEPARTMENTS),
        )

    @classmethod
    def default(
        cls,
        *,
        today: date | None = None,
        window_months: int = DEFAULT_WINDOW_MONTHS,
    ) -> "FilterCriteria":
        """Trailing *window_months* window ending today with both sentinels selected."""
        end = today or date.today()
        return cls(date_from=months_before(end, window_months), date_to=end)

    @property
    def all_regions(self) -> bool:
        return self.selected_regions == (ALL_REGIONS,)

    @property
    def all_departments(self) -> bool:
        return self.selected_departments == (ALL_DEPARTMENTS,)

    def with_dates(self, *, date_from: date | None = None, date_to: date | None = None) -> "FilterCriteria":
        return replace(
            self,
            date_from=date_from if date_from is not None else self.date_from,
            date_to=date_to if date_to is not None else self.date_to,
        )

    def toggle_region(self, region: str) -> "FilterCriteria":
        return replace(
            self, selected_regions=toggle_selection(self.selected_regions, region, ALL_REGIONS)
        )

    def toggle_department(self, department: str) -> "FilterCriteria":
        return replace(
            self,
            selected_departments=toggle_selection(
                self.selected_departments, department, ALL_DEPARTMENTS
            ),
        )


@dataclass(frozen=True)
class FilteredView:
    financial: tuple[FinancialCloseRecord, ...] = field(default_factory=tuple)
    process: tuple[ProcessEfficiencyRecord, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.financial and not self.process


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def parse_record_date(value: str, *, today: date) -> date:
    """
    Parse the leading ``YYYY-MM-DD`` of *value*; unparseable values map to *today*.
    """

    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return today


def _in_window(value: str, criteria: FilterCriteria, today: date) -> bool:
    return criteria.date_from <= parse_record_date(value, today=today) <= criteria.date_to


def filter_financial(
    criteria: FilterCriteria,
    records: Iterable[FinancialCloseRecord],
    *,
    today: date | None = None,
) -> tuple[FinancialCloseRecord, ...]:
    """Records inside the date window whose region and department match the selection."""
    current = today or date.today()
    regions = set(criteria.selected_regions)
    departments = set(criteria.selected_departments)
    return tuple(
        r
        for r in records
        if _in_window(r.period, criteria, current)
        and (criteria.all_regions or r.region in regions)
        and (criteria.all_departments or r.department in departments)
    )


def filter_process(
    criteria: FilterCriteria,
    records: Iterable[ProcessEfficiencyRecord],
    *,
    today: date | None = None,
) -> tuple[ProcessEfficiencyRecord, ...]:
    """Records inside the date window; region and department do not apply."""
    current = today or date.today()
    return tuple(r for r in records if _in_window(r.date, criteria, current))


def apply_filters(
    criteria: FilterCriteria,
    financial: Iterable[FinancialCloseRecord],
    process: Iterable[ProcessEfficiencyRecord],
    *,
    today: date | None = None,
) -> FilteredView:
    """Produce the filtered view of both collections."""
    current = today or date.today()
    view = FilteredView(
        financial=filter_financial(criteria, financial, today=current),
        process=filter_process(criteria, process, today=current),
    )
    logger.debug(
        "Filters applied window=%s..%s regions=%s departments=%s financial=%d process=%d",
        criteria.date_from,
        criteria.date_to,
        list(criteria.selected_regions),
        list(criteria.selected_departments),
        len(view.financial),
        len(view.process),
    )
    return view
