from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

import pytest

from app.domain.dashboard import InsightStatus
from app.logging_utils import format_event, log_event


def test_format_event_carries_scope_and_renders_values() -> None:
    line = format_event(
        "refresh_applied",
        scope="dashboard_session",
        status=InsightStatus.SUCCEEDED,
        at=datetime(2024, 3, 31, tzinfo=timezone.utc),
        errors=("b", "a"),
    )

    assert json.loads(line) == {
        "event": "refresh_applied",
        "scope": "dashboard_session",
        "status": InsightStatus.SUCCEEDED.value,
        "at": "2024-03-31T00:00:00+00:00",
        "errors": ["b", "a"],
    }


def test_log_event_respects_level(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.logging_utils")
    with caplog.at_level(logging.INFO, logger="tests.logging_utils"):
        log_event(logger, logging.DEBUG, "hidden", scope="test")
        log_event(logger, logging.INFO, "shown", scope="test", count=2)

    assert [json.loads(r.getMessage())["event"] for r in caplog.records] == ["shown"]
