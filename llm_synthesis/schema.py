"""Wire contract for the narrative-generation endpoint.

One explicit payload schema per insight intent. Requests are validated
before serialization on the client and again on arrival at the server.
Field names travel in camelCase (``avgCloseDays``), matching the
dashboard's JSON conventions.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class InsightType(str, Enum):
    """The four prompt intents understood by the endpoint."""

    CLOSE_PERFORMANCE = "close_performance"
    AUTOMATION = "automation"
    ANOMALY = "anomaly"
    QUERY = "query"


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )


class DepartmentAverage(_Payload):
    department: str
    avg_close_days: float


class PeriodAverage(_Payload):
    period: str
    avg_close_days: float


class ClosePerformancePayload(_Payload):
    """Average close days against the 5-day target, per department and recent periods."""

    avg_close_days: float
    department_data: List[DepartmentAverage] = Field(default_factory=list)
    trend_data: List[PeriodAverage] = Field(default_factory=list, max_length=3)


class ManualProcess(_Payload):
    # Travels with the store's column names, not camelCase.
    process_name: str = Field(min_length=1, alias="process_name")
    error_rate: float = Field(alias="error_rate")
    cost: float


class AutomationPayload(_Payload):
    """High error-rate processes that are candidates for automation."""

    manual_processes: List[ManualProcess] = Field(min_length=1, max_length=5)


class BaselineStats(_Payload):
    avg_error_rate: float
    std_dev: float = Field(ge=0.0)


class MonthStats(_Payload):
    month: str
    avg_error_rate: float


class OutlierSample(_Payload):
    name: str
    error_rate: float


class AnomalyPayload(_Payload):
    """Error-rate baseline, current month and the top statistical outliers."""

    baseline: BaselineStats
    current_month: MonthStats
    outliers: List[OutlierSample] = Field(default_factory=list, max_length=3)


class FinancialSample(_Payload):
    period: str
    department: str
    close_days: float
    automation_rate: float


class ProcessSample(_Payload):
    name: str
    category: str
    cycle_time: float
    error_rate: float
    cost: float


class QueryPayload(_Payload):
    """Capped recent-record sample sent alongside a free-text question."""

    financial_data: List[FinancialSample] = Field(default_factory=list, max_length=20)
    process_data: List[ProcessSample] = Field(default_factory=list, max_length=20)


PAYLOAD_MODELS: Dict[InsightType, type] = {
    InsightType.CLOSE_PERFORMANCE: ClosePerformancePayload,
    InsightType.AUTOMATION: AutomationPayload,
    InsightType.ANOMALY: AnomalyPayload,
    InsightType.QUERY: QueryPayload,
}

InsightPayload = Union[ClosePerformancePayload, AutomationPayload, AnomalyPayload, QueryPayload]


class InsightRequest(BaseModel):
    """Request body: ``{type, data, userQuery?}``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: InsightType
    data: InsightPayload
    user_query: Optional[str] = Field(default=None, alias="userQuery")

    @model_validator(mode="before")
    @classmethod
    def _coerce_payload(cls, values: Any) -> Any:
        """Parse ``data`` with the schema that belongs to ``type``."""
        if not isinstance(values, dict):
            return values
        try:
            insight_type = InsightType(values.get("type"))
        except ValueError:
            return values
        data = values.get("data")
        if isinstance(data, dict):
            values = {**values, "data": PAYLOAD_MODELS[insight_type].model_validate(data)}
        return values

    @model_validator(mode="after")
    def _check_intent(self) -> "InsightRequest":
        expected = PAYLOAD_MODELS[self.type]
        if not isinstance(self.data, expected):
            raise ValueError(f"data does not match the '{self.type.value}' payload schema")
        if self.type is InsightType.QUERY and not (self.user_query or "").strip():
            raise ValueError("userQuery is required for query requests")
        return self

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to the JSON body sent to the endpoint."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class InsightResponse(BaseModel):
    insight: str


class InsightErrorResponse(BaseModel):
    error: str
