"""
app/api/routers/insights_router.py

Narrative-generation endpoint.

POST /ai-insights

Body: ``{"type": <intent>, "data": <payload>, "userQuery"?: str}``.
The payload is validated against the schema for its intent, turned into
one prompt and sent to the configured LLM adapter with a fixed token
budget.

Responses
---------
200 → {"insight": str}
400 → {"error": str}   invalid body (handled by the app-level validation handler)
429 → {"error": str}   model provider rate limited
500 → {"error": str}   any other generation failure
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.api.dependencies import get_llm_adapter, get_prompt_builder
from llm_synthesis.adapter import BaseLLMAdapter, LLMGenerationError, LLMRateLimitError
from llm_synthesis.prompt_builder import InsightPromptBuilder
from llm_synthesis.schema import InsightErrorResponse, InsightRequest, InsightResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["insights"])

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a few seconds."


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=InsightErrorResponse(error=message).model_dump(),
    )


@router.post(
    "/ai-insights",
    response_model=InsightResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": InsightErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": InsightErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": InsightErrorResponse},
    },
)
def generate_insight(
    body: InsightRequest,
    adapter: BaseLLMAdapter = Depends(get_llm_adapter),
    prompt_builder: InsightPromptBuilder = Depends(get_prompt_builder),
) -> InsightResponse | JSONResponse:
    """
    Generate one narrative insight for the requested intent.
    """
    prompt = prompt_builder.build_prompt(body)

    try:
        insight = adapter.generate(prompt)
    except LLMRateLimitError as exc:
        logger.warning("LLM rate limited type=%s: %s", body.type.value, exc)
        return _error(status.HTTP_429_TOO_MANY_REQUESTS, RATE_LIMIT_MESSAGE)
    except LLMGenerationError as exc:
        logger.error("LLM generation failed type=%s: %s", body.type.value, exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Failed to generate insight")
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected insight failure type=%s", body.type.value)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Failed to generate insight")

    logger.info("Insight generated type=%s chars=%d", body.type.value, len(insight))
    return InsightResponse(insight=insight)
