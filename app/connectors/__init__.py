"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorRequestError, RetryPolicy
from app.connectors.narrative_client import (
    NarrativeClient,
    NarrativeRateLimitedError,
    NarrativeRequestError,
)
from app.connectors.record_store import RecordFetchResult, RecordStoreConnector

__all__ = [
    "BaseConnector",
    "ConnectorRequestError",
    "NarrativeClient",
    "NarrativeRateLimitedError",
    "NarrativeRequestError",
    "RecordFetchResult",
    "RecordStoreConnector",
    "RetryPolicy",
]
