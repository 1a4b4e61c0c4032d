from __future__ import annotations

import json

import httpx
import pytest

from app.config import NarrativeSettings
from app.connectors.narrative_client import (
    NarrativeClient,
    NarrativeRateLimitedError,
    NarrativeRequestError,
)
from llm_synthesis.schema import InsightRequest

ENDPOINT = "https://functions.test/ai-insights"


def _request() -> InsightRequest:
    return InsightRequest.model_validate(
        {
            "type": "automation",
            "data": {"manualProcesses": [{"process_name": "AP", "error_rate": 4.0, "cost": 10.0}]},
        }
    )


def _client(handler, **settings) -> NarrativeClient:
    values = {"endpoint_url": ENDPOINT, "api_key": "anon-key", "timeout_seconds": 5.0}
    values.update(settings)
    return NarrativeClient(
        settings=NarrativeSettings(**values),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_generate_posts_wire_body_and_returns_insight() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"insight": "Automate AP first."})

    insight = await _client(handler).generate(_request())

    assert insight == "Automate AP first."
    assert str(seen[0].url) == ENDPOINT
    assert seen[0].headers["Authorization"] == "Bearer anon-key"
    assert json.loads(seen[0].content) == _request().to_wire()


@pytest.mark.asyncio
async def test_429_is_rate_limited() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "Rate limit exceeded. Please try again in a few seconds."})

    with pytest.raises(NarrativeRateLimitedError) as exc_info:
        await _client(handler).generate(_request())
    assert exc_info.value.status_code == 429


@pytest.mark.asyncio
async def test_server_error_carries_error_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "upstream exploded"})

    with pytest.raises(NarrativeRequestError, match="upstream exploded") as exc_info:
        await _client(handler).generate(_request())
    assert not isinstance(exc_info.value, NarrativeRateLimitedError)
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_empty_insight_is_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"insight": "   "})

    with pytest.raises(NarrativeRequestError):
        await _client(handler).generate(_request())


@pytest.mark.asyncio
async def test_timeout_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(NarrativeRequestError, match="timed out"):
        await _client(handler).generate(_request())


@pytest.mark.asyncio
async def test_missing_endpoint_is_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    with pytest.raises(NarrativeRequestError):
        await _client(handler, endpoint_url=None).generate(_request())
