from __future__ import annotations

from app.services.chart_service import (
    category_efficiency,
    close_trend_by_period,
    cost_by_category,
    department_averages,
    process_efficiency_bars,
    process_table,
)


def test_close_trend_is_ascending_by_period(make_financial) -> None:
    rows = close_trend_by_period(
        [
            make_financial(period="2024-02-29", close_days=5.0),
            make_financial(period="2024-01-31", close_days=4.0),
            make_financial(period="2024-01-31", close_days=4.25),
        ]
    )
    assert rows == [
        {"period": "2024-01-31", "avg_close_days": 4.1},
        {"period": "2024-02-29", "avg_close_days": 5.0},
    ]


def test_department_averages_in_first_seen_order(make_financial) -> None:
    rows = department_averages(
        [
            make_financial(department="Tax", close_days=4.0),
            make_financial(department="Treasury", close_days=6.0),
            make_financial(department="Tax", close_days=8.0),
        ]
    )
    assert rows == [
        {"department": "Tax", "avg_close_days": 6.0},
        {"department": "Treasury", "avg_close_days": 6.0},
    ]


def test_process_bars_truncate_long_names_and_cap_at_eight(make_process) -> None:
    records = [make_process(process_name="Three-Way Invoice Matching")] + [
        make_process(process_name=f"P{i}") for i in range(10)
    ]
    bars = process_efficiency_bars(records)

    assert len(bars) == 8
    assert bars[0]["name"] == "Three-Way Invoi..."
    assert bars[0]["full_name"] == "Three-Way Invoice Matching"
    assert bars[1]["name"] == "P0"


def test_cost_by_category_rounds_and_labels_missing(make_process) -> None:
    rows = cost_by_category(
        [
            make_process(category="Payables", cost=100.4),
            make_process(category="", cost=50.6),
            make_process(category="Payables", cost=0.2),
        ]
    )
    assert rows == [{"name": "Payables", "value": 101}, {"name": "Other", "value": 51}]


def test_category_efficiency_uses_completed_only(make_process) -> None:
    rows = category_efficiency(
        [
            make_process(category="A", cycle_time=10.0, error_rate=1.234, status="Completed"),
            make_process(category="B", cycle_time=30.0, error_rate=2.0, status="completed"),
            make_process(category="A", cycle_time=90.0, error_rate=9.0, status="in progress"),
        ]
    )
    assert rows == [
        {"category": "B", "avg_cycle_time": 30.0, "avg_error_rate": 2.0},
        {"category": "A", "avg_cycle_time": 10.0, "avg_error_rate": 1.23},
    ]


def test_process_table_caps_at_ten(make_process) -> None:
    assert len(process_table([make_process(id=str(i)) for i in range(15)])) == 10
