"""
tests/test_filter_engine.py

Pytest unit tests for the filter engine.

Coverage
--------
- Inclusive date boundaries on both ends
- Degenerate range (date_from > date_to)
- Unparseable dates treated as today
- Region/department constraints apply to financial records only
- Sentinel exclusivity and toggle semantics
- Default window and reset
"""

from __future__ import annotations

from datetime import date

import pytest

from app.services.filter_engine import (
    ALL_DEPARTMENTS,
    ALL_REGIONS,
    FilterCriteria,
    apply_filters,
    filter_financial,
    filter_process,
    months_before,
    normalize_selection,
    parse_record_date,
    toggle_selection,
)

TODAY = date(2024, 3, 15)


def _criteria(**overrides) -> FilterCriteria:
    values = {"date_from": date(2024, 1, 1), "date_to": date(2024, 3, 31)}
    values.update(overrides)
    return FilterCriteria(**values)


# ---------------------------------------------------------------------------
# Date window
# ---------------------------------------------------------------------------


class TestDateWindow:
    def test_boundaries_are_inclusive(self, make_financial, make_process) -> None:
        financial = [
            make_financial(id="a", period="2024-01-01"),
            make_financial(id="b", period="2024-03-31"),
            make_financial(id="c", period="2023-12-31"),
            make_financial(id="d", period="2024-04-01"),
        ]
        process = [
            make_process(id="p1", date="2024-01-01"),
            make_process(id="p2", date="2024-03-31"),
            make_process(id="p3", date="2024-04-01"),
        ]

        view = apply_filters(_criteria(), financial, process, today=TODAY)

        assert [r.id for r in view.financial] == ["a", "b"]
        assert [r.id for r in view.process] == ["p1", "p2"]

    def test_degenerate_range_yields_empty_view(self, make_financial, make_process) -> None:
        criteria = _criteria(date_from=date(2024, 3, 31), date_to=date(2024, 1, 1))
        view = apply_filters(
            criteria,
            [make_financial(period="2024-02-01"), make_financial(period="not-a-date")],
            [make_process(date="2024-02-01")],
            today=TODAY,
        )

        assert view.financial == ()
        assert view.process == ()
        assert view.is_empty

    def test_single_day_window(self, make_process) -> None:
        criteria = _criteria(date_from=date(2024, 2, 29), date_to=date(2024, 2, 29))
        kept = filter_process(
            criteria,
            [make_process(id="x", date="2024-02-29"), make_process(id="y", date="2024-03-01")],
            today=TODAY,
        )
        assert [r.id for r in kept] == ["x"]

    def test_timestamp_dates_use_leading_calendar_date(self, make_financial) -> None:
        kept = filter_financial(
            _criteria(), [make_financial(period="2024-03-31T23:59:59+00:00")], today=TODAY
        )
        assert len(kept) == 1

    def test_input_order_is_preserved(self, make_process) -> None:
        records = [make_process(id=str(i), date=f"2024-02-{i:02d}") for i in (9, 3, 27)]
        kept = filter_process(_criteria(), records, today=TODAY)
        assert [r.id for r in kept] == ["9", "3", "27"]


class TestUnparseableDates:
    def test_parse_record_date_falls_back_to_today(self) -> None:
        assert parse_record_date("Q1 2024", today=TODAY) == TODAY
        assert parse_record_date("", today=TODAY) == TODAY

    def test_parse_record_date_reads_iso_prefix(self) -> None:
        assert parse_record_date("2023-07-04", today=TODAY) == date(2023, 7, 4)

    def test_invalid_date_kept_when_window_contains_today(self, make_financial) -> None:
        kept = filter_financial(_criteria(), [make_financial(period="March close")], today=TODAY)
        assert len(kept) == 1

    def test_invalid_date_dropped_when_window_excludes_today(self, make_financial) -> None:
        criteria = _criteria(date_to=date(2024, 2, 1))
        kept = filter_financial(criteria, [make_financial(period="March close")], today=TODAY)
        assert kept == ()


# ---------------------------------------------------------------------------
# Region / department
# ---------------------------------------------------------------------------


class TestDimensionFilters:
    def test_region_filter_applies_to_financial_only(self, make_financial, make_process) -> None:
        criteria = _criteria(selected_regions=("Europe",))
        view = apply_filters(
            criteria,
            [
                make_financial(id="eu", region="Europe"),
                make_financial(id="na", region="North America"),
            ],
            [make_process(id="p")],
            today=TODAY,
        )

        assert [r.id for r in view.financial] == ["eu"]
        assert [r.id for r in view.process] == ["p"]

    def test_multiple_departments_match_any(self, make_financial) -> None:
        criteria = _criteria(selected_departments=("Tax", "Treasury"))
        kept = filter_financial(
            criteria,
            [
                make_financial(id="1", department="Tax"),
                make_financial(id="2", department="Treasury"),
                make_financial(id="3", department="Reporting"),
            ],
            today=TODAY,
        )
        assert [r.id for r in kept] == ["1", "2"]

    def test_region_and_department_combine(self, make_financial) -> None:
        criteria = _criteria(selected_regions=("Europe",), selected_departments=("Tax",))
        kept = filter_financial(
            criteria,
            [
                make_financial(id="1", region="Europe", department="Tax"),
                make_financial(id="2", region="Europe", department="Treasury"),
                make_financial(id="3", region="Global", department="Tax"),
            ],
            today=TODAY,
        )
        assert [r.id for r in kept] == ["1"]

    def test_sentinels_impose_no_constraint(self, make_financial) -> None:
        records = [make_financial(id="1", region="", department="")]
        assert len(filter_financial(_criteria(), records, today=TODAY)) == 1


# ---------------------------------------------------------------------------
# Selections
# ---------------------------------------------------------------------------


class TestSelections:
    def test_specific_value_replaces_sentinel(self) -> None:
        assert toggle_selection((ALL_REGIONS,), "Europe", ALL_REGIONS) == ("Europe",)

    def test_values_accumulate_in_click_order(self) -> None:
        assert toggle_selection(("Europe",), "Global", ALL_REGIONS) == ("Europe", "Global")

    def test_deselecting_last_value_reverts_to_sentinel(self) -> None:
        assert toggle_selection(("Europe",), "Europe", ALL_REGIONS) == (ALL_REGIONS,)

    def test_choosing_sentinel_clears_specific_values(self) -> None:
        assert toggle_selection(("Europe", "Global"), ALL_REGIONS, ALL_REGIONS) == (ALL_REGIONS,)

    @pytest.mark.parametrize(
        "values, expected",
        [
            ([], (ALL_DEPARTMENTS,)),
            ([ALL_DEPARTMENTS, "Tax"], ("Tax",)),
            (["Tax", "Tax", " "], ("Tax",)),
        ],
    )
    def test_normalize_selection(self, values: list[str], expected: tuple[str, ...]) -> None:
        assert normalize_selection(values, ALL_DEPARTMENTS) == expected

    def test_criteria_never_holds_sentinel_with_values(self) -> None:
        criteria = _criteria(selected_regions=(ALL_REGIONS, "Europe"), selected_departments=())
        assert criteria.selected_regions == ("Europe",)
        assert criteria.selected_departments == (ALL_DEPARTMENTS,)
        assert not criteria.all_regions
        assert criteria.all_departments

    def test_criteria_toggle_returns_new_instance(self) -> None:
        criteria = _criteria()
        toggled = criteria.toggle_department("Tax")
        assert criteria.selected_departments == (ALL_DEPARTMENTS,)
        assert toggled.selected_departments == ("Tax",)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_default_window_is_trailing_36_months(self) -> None:
        criteria = FilterCriteria.default(today=date(2024, 5, 31))
        assert criteria.date_from == date(2021, 5, 31)
        assert criteria.date_to == date(2024, 5, 31)
        assert criteria.selected_regions == (ALL_REGIONS,)
        assert criteria.selected_departments == (ALL_DEPARTMENTS,)

    def test_months_before_clamps_to_month_end(self) -> None:
        assert months_before(date(2024, 3, 31), 1) == date(2024, 2, 29)
        assert months_before(date(2024, 1, 15), 13) == date(2022, 12, 15)

    def test_reset_is_independent_of_prior_state(self) -> None:
        narrowed = (
            FilterCriteria.default(today=TODAY)
            .toggle_region("Europe")
            .toggle_department("Tax")
            .with_dates(date_from=date(2020, 1, 1))
        )
        assert narrowed != FilterCriteria.default(today=TODAY)
        assert FilterCriteria.default(today=TODAY) == FilterCriteria(
            date_from=date(2021, 3, 15), date_to=TODAY
        )
