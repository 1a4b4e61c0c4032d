"""
Shared pytest fixtures: record factories and a mock LLM adapter environment.
"""

from __future__ import annotations

import os
from typing import Any, Callable

import pytest

os.environ.setdefault("LLM_ADAPTER", "mock")

from app.domain.records import FinancialCloseRecord, ProcessEfficiencyRecord  # noqa: E402


def _financial(**overrides: Any) -> FinancialCloseRecord:
    values: dict[str, Any] = {
        "id": "fc-1",
        "period": "2024-03-31",
        "close_days": 6.0,
        "automation_rate": 70.0,
        "reconciliation_items": 100,
        "region": "North America",
        "department": "Accounts Payable",
        "created_at": "2024-04-01T00:00:00+00:00",
    }
    values.update(overrides)
    return FinancialCloseRecord(**values)


def _process(**overrides: Any) -> ProcessEfficiencyRecord:
    values: dict[str, Any] = {
        "id": "pe-1",
        "process_name": "Invoice Matching",
        "cycle_time": 10.0,
        "error_rate": 2.0,
        "cost": 1000.0,
        "date": "2024-03-15",
        "category": "Payables",
        "status": "completed",
        "created_at": "2024-03-16T00:00:00+00:00",
    }
    values.update(overrides)
    return ProcessEfficiencyRecord(**values)


@pytest.fixture()
def make_financial() -> Callable[..., FinancialCloseRecord]:
    return _financial


@pytest.fixture()
def make_process() -> Callable[..., ProcessEfficiencyRecord]:
    return _process
