"""
app/connectors/narrative_client.py

Async client for the narrative-generation endpoint.

One POST per insight request, no automatic retries: a failed or
rate-limited call is terminal for that request.  Every call carries an
explicit timeout and can be cancelled by cancelling the awaiting task.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.config import NarrativeSettings
from llm_synthesis.schema import InsightRequest

logger = logging.getLogger(__name__)


class NarrativeRequestError(RuntimeError):
    """
    Raised when the endpoint call fails or returns an unusable body.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NarrativeRateLimitedError(NarrativeRequestError):
    """
    Raised when the endpoint answers HTTP 429.
    """


class NarrativeClient:
    """
    Sends validated :class:`InsightRequest` bodies and returns the insight text.

    When no ``client`` is injected a short-lived ``httpx.AsyncClient`` is
    opened per call, so the instance is not bound to any one event loop.
    """

    def __init__(
        self,
        *,
        settings: NarrativeSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client

    async def generate(self, request: InsightRequest) -> str:
        if not self._settings.endpoint_url:
            raise NarrativeRequestError("NARRATIVE_ENDPOINT_URL is not configured.")

        body = request.to_wire()
        if self._client is not None:
            response = await self._post(self._client, body)
        else:
            async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
                response = await self._post(client, body)
        return self._parse(request, response)

    async def _post(self, client: httpx.AsyncClient, body: dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["apikey"] = self._settings.api_key
            headers["Authorization"] = f"Bearer {self._settings.api_key}"
        try:
            return await client.post(
                self._settings.endpoint_url or "",
                json=body,
                headers=headers,
                timeout=self._settings.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise NarrativeRequestError("Narrative request timed out.") from exc
        except httpx.HTTPError as exc:
            raise NarrativeRequestError(f"Narrative request failed: {exc}") from exc

    def _parse(self, request: InsightRequest, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        error_text = payload.get("error") if isinstance(payload, dict) else None

        if response.status_code == 429:
            logger.warning("Narrative endpoint rate limited type=%s", request.type.value)
            raise NarrativeRateLimitedError(
                error_text or "Rate limit exceeded. Please try again in a few seconds.",
                status_code=429,
            )
        if response.status_code >= 400:
            logger.error(
                "Narrative endpoint error type=%s status=%s error=%s",
                request.type.value,
                response.status_code,
                error_text,
            )
            raise NarrativeRequestError(
                error_text or f"Narrative endpoint returned HTTP {response.status_code}.",
                status_code=response.status_code,
            )

        insight = payload.get("insight") if isinstance(payload, dict) else None
        if not isinstance(insight, str) or not insight.strip():
            raise NarrativeRequestError(
                "Narrative endpoint returned no insight text.",
                status_code=response.status_code,
            )
        return insight
