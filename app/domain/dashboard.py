"""
app/domain/dashboard.py

Session-scoped value types produced by the insight pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Literal


class InsightStatus(str, Enum):
    """
    Lifecycle of one automated insight slot.
    """

    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class InsightData:
    """
    Narrative text for the three automated insight slots; ``None`` means not yet loaded.
    """

    close_performance: str | None = None
    automation: str | None = None
    anomaly: str | None = None


@dataclass(frozen=True)
class Recommendation:
    """
    One actionable recommendation derived from the current metrics.
    """

    priority: Literal["high", "medium"]
    title: str
    description: str
    details: str


@dataclass(frozen=True)
class ChatMessage:
    role: Literal["user", "assistant"]
    content: str


class ChatTranscript:
    """
    Append-only ordered sequence of chat turns for one session.

    Turns are never reordered, replaced or truncated.
    """

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []

    def append_user(self, content: str) -> ChatMessage:
        return self._append(ChatMessage(role="user", content=content))

    def append_assistant(self, content: str) -> ChatMessage:
        return self._append(ChatMessage(role="assistant", content=content))

    def _append(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message)
        return message

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))
