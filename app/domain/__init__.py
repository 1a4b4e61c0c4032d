"""
app/domain package marker.
"""

from app.domain.dashboard import (
    ChatMessage,
    ChatTranscript,
    InsightData,
    InsightStatus,
    Recommendation,
)
from app.domain.records import (
    FinancialCloseRecord,
    ProcessEfficiencyRecord,
    RecordParseError,
    normalize_status,
)

__all__ = [
    "ChatMessage",
    "ChatTranscript",
    "FinancialCloseRecord",
    "InsightData",
    "InsightStatus",
    "ProcessEfficiencyRecord",
    "Recommendation",
    "RecordParseError",
    "normalize_status",
]
