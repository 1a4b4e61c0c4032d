"""Per-intent prompt builder for narrative generation."""

import json
from typing import Any, Callable, Dict

from llm_synthesis.schema import (
    AnomalyPayload,
    AutomationPayload,
    ClosePerformancePayload,
    InsightRequest,
    InsightType,
    QueryPayload,
)

CLOSE_TARGET_DAYS = 5

_CLOSE_PERFORMANCE_TEMPLATE = """\
Analyze this financial close data:
Current Average: {avg_close_days} days (Target: {target} days)
Department Performance: {department_data}
3-Month Trend: {trend_data}

Provide 2-3 sentences:
1. Overall performance vs target
2. Departments needing attention
3. Trend direction

Start with "Your average close cycle..." and be actionable."""

_AUTOMATION_TEMPLATE = """\
Analyze these processes with high error rates:
{process_lines}

Identify:
1. Top process to automate (highest ROI based on error rate and cost)
2. Expected error reduction with automation
3. Annual savings estimate

Be specific with process names and numbers."""

_ANOMALY_TEMPLATE = """\
Analyze for anomalies:
12-Month Baseline: {baseline}
Current Month: {current_month}
Outliers: {outliers}

1. Are there concerning anomalies?
2. Root cause hypothesis
3. Month-end prediction

Start with "Warning:" if anomaly exists, "On track:" if normal."""

_QUERY_TEMPLATE = """\
User Question: "{user_query}"

Data Context:
Financial Metrics: {financial_data}
Process Data: {process_data}

Provide a clear conversational answer:
- Include specific metrics when relevant
- Keep under 150 words
- End with actionable insight

Natural language response with data citations."""


def _to_json(value: Any) -> str:
    """Compact camelCase JSON for embedding payload fragments in a prompt."""
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json", by_alias=True)
    elif isinstance(value, list):
        value = [
            item.model_dump(mode="json", by_alias=True) if hasattr(item, "model_dump") else item
            for item in value
        ]
    return json.dumps(value, separators=(",", ":"), default=str)


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class InsightPromptBuilder:
    """Builds one natural-language prompt per insight intent.

    The payload has already been validated against its intent schema,
    so builders only format; they never compute new figures.
    """

    def __init__(self) -> None:
        self._builders: Dict[InsightType, Callable[[InsightRequest], str]] = {
            InsightType.CLOSE_PERFORMANCE: self._close_performance,
            InsightType.AUTOMATION: self._automation,
            InsightType.ANOMALY: self._anomaly,
            InsightType.QUERY: self._query,
        }

    def build_prompt(self, request: InsightRequest) -> str:
        """Return the prompt text for *request*.

        Args:
            request: A validated insight request.

        Returns:
            The fully formatted prompt string.
        """
        return self._builders[request.type](request)

    def _close_performance(self, request: InsightRequest) -> str:
        data: ClosePerformancePayload = request.data  # type: ignore[assignment]
        return _CLOSE_PERFORMANCE_TEMPLATE.format(
            avg_close_days=f"{data.avg_close_days:.1f}",
            target=CLOSE_TARGET_DAYS,
            department_data=_to_json(data.department_data),
            trend_data=_to_json(data.trend_data),
        )

    def _automation(self, request: InsightRequest) -> str:
        data: AutomationPayload = request.data  # type: ignore[assignment]
        lines = "\n".join(
            f"{p.process_name}: {_format_number(p.error_rate)}% errors, "
            f"${_format_number(p.cost)}/month"
            for p in data.manual_processes
        )
        return _AUTOMATION_TEMPLATE.format(process_lines=lines)

    def _anomaly(self, request: InsightRequest) -> str:
        data: AnomalyPayload = request.data  # type: ignore[assignment]
        return _ANOMALY_TEMPLATE.format(
            baseline=_to_json(data.baseline),
            current_month=_to_json(data.current_month),
            outliers=_to_json(data.outliers),
        )

    def _query(self, request: InsightRequest) -> str:
        data: QueryPayload = request.data  # type: ignore[assignment]
        return _QUERY_TEMPLATE.format(
            user_query=(request.user_query or "").strip(),
            financial_data=_to_json(data.financial_data),
            process_data=_to_json(data.process_data),
        )
