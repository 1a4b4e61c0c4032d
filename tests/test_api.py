"""
tests/test_api.py

Coverage
--------
- POST /ai-insights success and error-status mapping
- Body validation reported as HTTP 400 with {"error": str}
- GET /dashboard/summary and GET /export/csv over a fake record store
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_llm_adapter, get_record_store
from app.api.routers.insights_router import RATE_LIMIT_MESSAGE
from app.connectors.base import ConnectorRequestError
from app.connectors.record_store import RecordFetchResult
from app.main import create_app
from llm_synthesis.adapter import BaseLLMAdapter, LLMGenerationError, LLMRateLimitError, MockLLMAdapter

CLOSE_BODY = {
    "type": "close_performance",
    "data": {
        "avgCloseDays": 6.2,
        "departmentData": [{"department": "Tax", "avgCloseDays": 6.2}],
        "trendData": [{"period": "2024-03-31", "avgCloseDays": 6.2}],
    },
}

WINDOW = {"date_from": "2024-01-01", "date_to": "2024-12-31"}


class _RaisingAdapter(BaseLLMAdapter):
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def generate(self, prompt: str) -> str:
        raise self.exc


class _Store:
    def __init__(self, financial: Any = (), process: Any = ()) -> None:
        self.financial = financial
        self.process = process

    def fetch_financial_close(self) -> RecordFetchResult:
        if isinstance(self.financial, Exception):
            raise self.financial
        return RecordFetchResult(source="financial_close_metrics", records=list(self.financial))

    def fetch_process_efficiency(self) -> RecordFetchResult:
        return RecordFetchResult(source="process_efficiency", records=list(self.process))


@pytest.fixture()
def app():
    application = create_app()
    application.dependency_overrides[get_llm_adapter] = MockLLMAdapter
    yield application
    application.dependency_overrides.clear()


def _client(app, *, store: _Store | None = None, adapter: BaseLLMAdapter | None = None) -> TestClient:
    if store is not None:
        app.dependency_overrides[get_record_store] = lambda: store
    if adapter is not None:
        app.dependency_overrides[get_llm_adapter] = lambda: adapter
    return TestClient(app)


# ---------------------------------------------------------------------------
# /ai-insights
# ---------------------------------------------------------------------------


class TestInsightsEndpoint:
    def test_returns_insight(self, app) -> None:
        response = _client(app).post("/ai-insights", json=CLOSE_BODY)

        assert response.status_code == 200
        assert response.json()["insight"].startswith("Mock insight:")

    def test_unknown_type_is_400(self, app) -> None:
        response = _client(app).post("/ai-insights", json={"type": "forecast", "data": {}})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_query_without_user_query_is_400(self, app) -> None:
        response = _client(app).post(
            "/ai-insights", json={"type": "query", "data": {"financialData": [], "processData": []}}
        )
        assert response.status_code == 400

    def test_provider_rate_limit_maps_to_429(self, app) -> None:
        client = _client(app, adapter=_RaisingAdapter(LLMRateLimitError("quota")))
        response = client.post("/ai-insights", json=CLOSE_BODY)

        assert response.status_code == 429
        assert response.json() == {"error": RATE_LIMIT_MESSAGE}

    def test_generation_failure_maps_to_500(self, app) -> None:
        client = _client(app, adapter=_RaisingAdapter(LLMGenerationError("model unavailable")))
        response = client.post("/ai-insights", json=CLOSE_BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "model unavailable"}

    def test_unexpected_failure_maps_to_500(self, app) -> None:
        client = _client(app, adapter=_RaisingAdapter(ValueError("bad state")))
        response = client.post("/ai-insights", json=CLOSE_BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "bad state"}


# ---------------------------------------------------------------------------
# Dashboard and export
# ---------------------------------------------------------------------------


class TestDashboardEndpoints:
    def test_health(self, app) -> None:
        assert _client(app).get("/health").json() == {"status": "ok"}

    def test_summary_applies_query_filters(self, app, make_financial, make_process) -> None:
        store = _Store(
            [make_financial(id="eu", region="Europe", close_days=9.0), make_financial(id="na")],
            [make_process()],
        )
        response = _client(app, store=store).get(
            "/dashboard/summary", params={**WINDOW, "region": "Europe"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["criteria"]["regions"] == ["Europe"]
        assert body["counts"]["filtered_financial"] == 1
        assert body["kpis"]["avg_close_days"] == pytest.approx(9.0)
        assert body["recommendations"][0]["priority"] == "high"

    def test_summary_reports_collection_errors(self, app, make_process) -> None:
        store = _Store(ConnectorRequestError("down"), [make_process()])
        body = _client(app, store=store).get("/dashboard/summary", params=WINDOW).json()

        assert list(body["errors"]) == ["financial_close"]
        assert body["counts"]["process"] == 1

    def test_inverted_window_yields_empty_view(self, app, make_financial, make_process) -> None:
        client = _client(app, store=_Store([make_financial()], [make_process()]))
        inverted = {"date_from": "2024-05-01", "date_to": "2024-01-01"}

        summary = client.get("/dashboard/summary", params=inverted)
        assert summary.status_code == 200
        assert summary.json()["counts"]["filtered_financial"] == 0
        assert summary.json()["counts"]["filtered_process"] == 0
        assert summary.json()["counts"]["financial"] == 1

        export = client.get("/export/csv", params=inverted)
        assert export.status_code == 404
        assert set(export.json()) == {"error"}

    def test_export_csv(self, app, make_financial, make_process) -> None:
        store = _Store([make_financial()], [make_process()])
        response = _client(app, store=store).get("/export/csv", params=WINDOW)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"].startswith(
            'attachment; filename="CFO_Dashboard_Export_'
        )
        assert response.text.startswith("=== FINANCIAL CLOSE METRICS ===\n")
        assert '"Invoice Matching"' in response.text

    def test_export_with_nothing_to_export_is_404(self, app) -> None:
        response = _client(app, store=_Store()).get("/export/csv", params=WINDOW)
        assert response.status_code == 404
        assert response.json() == {"error": "Nothing to export: both collections are empty."}
