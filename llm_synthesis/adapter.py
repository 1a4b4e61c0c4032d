"""LLM adapters for narrative generation.

Provides a base interface and concrete adapters for OpenAI-compatible
APIs and a deterministic mock for testing.
"""

import os
from abc import ABC, abstractmethod
from typing import Optional

import openai

FALLBACK_COMPLETION = "Unable to generate insight."


class LLMGenerationError(Exception):
    """Raised when the model call fails for any reason other than rate limiting."""


class LLMRateLimitError(LLMGenerationError):
    """Raised when the model provider rejects the call with a rate limit."""


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the completion text.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Plain-text narrative from the model.

        Raises:
            LLMRateLimitError: If the provider is rate limiting.
            LLMGenerationError: On any other provider failure.
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Sends a single user turn with a fixed token budget and returns the
    first choice's text.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 500,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY", ""),
            base_url=base_url or None,
        )
        self._model = model
        self._max_tokens = max_tokens

    def generate(self, prompt: str) -> str:
        """Call the OpenAI chat completion API.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Completion text, or a fixed fallback sentence when the model
            returned no content.
        """
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self._max_tokens,
                stream=False,
            )
        except openai.RateLimitError as exc:
            raise LLMRateLimitError(str(exc)) from exc
        except openai.OpenAIError as exc:
            raise LLMGenerationError(str(exc)) from exc

        if not response.choices:
            return FALLBACK_COMPLETION
        content = (response.choices[0].message.content or "").strip()
        return content or FALLBACK_COMPLETION


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that echoes the first prompt line.

    Used for local testing and CI pipelines where no LLM API
    is available.
    """

    def generate(self, prompt: str) -> str:
        first_line = prompt.strip().splitlines()[0] if prompt.strip() else ""
        return f"Mock insight: {first_line}"
