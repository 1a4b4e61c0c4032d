import pytest
from pydantic import ValidationError

from llm_synthesis.adapter import FALLBACK_COMPLETION, MockLLMAdapter
from llm_synthesis.prompt_builder import InsightPromptBuilder
from llm_synthesis.schema import (
    AutomationPayload,
    ClosePerformancePayload,
    InsightRequest,
    InsightType,
)


def _close_performance_body() -> dict:
    return {
        "type": "close_performance",
        "data": {
            "avgCloseDays": 6.4,
            "departmentData": [{"department": "Tax", "avgCloseDays": 7.25}],
            "trendData": [{"period": "2024-03-31", "avgCloseDays": 6.0}],
        },
    }


def _automation_body() -> dict:
    return {
        "type": "automation",
        "data": {
            "manualProcesses": [
                {"process_name": "Vendor Setup", "error_rate": 4.5, "cost": 1200.0},
            ]
        },
    }


def test_request_parses_payload_for_its_intent() -> None:
    request = InsightRequest.model_validate(_close_performance_body())

    assert request.type is InsightType.CLOSE_PERFORMANCE
    assert isinstance(request.data, ClosePerformancePayload)
    assert request.data.department_data[0].avg_close_days == 7.25


def test_wire_format_round_trips_aliases() -> None:
    wire = InsightRequest.model_validate(_automation_body()).to_wire()

    assert wire == _automation_body()
    assert "userQuery" not in wire


def test_payload_must_match_intent() -> None:
    body = _automation_body()
    body["type"] = "anomaly"
    with pytest.raises(ValidationError):
        InsightRequest.model_validate(body)


def test_query_requires_user_query() -> None:
    body = {"type": "query", "data": {"financialData": [], "processData": []}}
    with pytest.raises(ValidationError):
        InsightRequest.model_validate(body)

    body["userQuery"] = "How is our close trending?"
    assert InsightRequest.model_validate(body).user_query == "How is our close trending?"


def test_unknown_intent_and_extra_fields_are_rejected() -> None:
    with pytest.raises(ValidationError):
        InsightRequest.model_validate({"type": "forecast", "data": {}})

    body = _close_performance_body()
    body["data"]["unexpected"] = 1
    with pytest.raises(ValidationError):
        InsightRequest.model_validate(body)


def test_automation_payload_limits() -> None:
    with pytest.raises(ValidationError):
        AutomationPayload(manual_processes=[])

    process = {"process_name": "P", "error_rate": 4.0, "cost": 1.0}
    with pytest.raises(ValidationError):
        AutomationPayload.model_validate({"manualProcesses": [process] * 6})


def test_close_performance_prompt_mentions_target() -> None:
    prompt = InsightPromptBuilder().build_prompt(
        InsightRequest.model_validate(_close_performance_body())
    )

    assert "Current Average: 6.4 days (Target: 5 days)" in prompt
    assert '[{"department":"Tax","avgCloseDays":7.25}]' in prompt
    assert 'Start with "Your average close cycle..."' in prompt


def test_automation_prompt_lists_processes() -> None:
    prompt = InsightPromptBuilder().build_prompt(InsightRequest.model_validate(_automation_body()))
    assert "Vendor Setup: 4.5% errors, $1200/month" in prompt


def test_anomaly_prompt_asks_for_warning_prefix() -> None:
    request = InsightRequest.model_validate(
        {
            "type": "anomaly",
            "data": {
                "baseline": {"avgErrorRate": 2.5, "stdDev": 1.1},
                "currentMonth": {"month": "2024-03", "avgErrorRate": 3.0},
                "outliers": [{"name": "Payroll", "errorRate": 9.0}],
            },
        }
    )
    prompt = InsightPromptBuilder().build_prompt(request)

    assert '"Warning:"' in prompt
    assert '{"month":"2024-03","avgErrorRate":3.0}' in prompt


def test_query_prompt_embeds_question() -> None:
    request = InsightRequest.model_validate(
        {
            "type": "query",
            "userQuery": "  Which department is slowest?  ",
            "data": {"financialData": [], "processData": []},
        }
    )
    prompt = InsightPromptBuilder().build_prompt(request)

    assert prompt.startswith('User Question: "Which department is slowest?"')
    assert "Keep under 150 words" in prompt


def test_mock_adapter_echoes_first_prompt_line() -> None:
    adapter = MockLLMAdapter()
    assert adapter.generate("Line one\nLine two") == "Mock insight: Line one"
    assert FALLBACK_COMPLETION == "Unable to generate insight."
