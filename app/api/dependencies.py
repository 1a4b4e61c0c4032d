"""
app/api/dependencies.py

Shared FastAPI dependencies: record store, LLM adapter, prompt builder and
the filter criteria parsed from query parameters.
"""

from __future__ import annotations

from datetime import date
from functools import lru_cache

from fastapi import Query

from app.config import get_dashboard_settings, get_llm_settings, get_record_store_settings
from app.connectors.record_store import RecordStoreConnector
from app.services.filter_engine import ALL_DEPARTMENTS, ALL_REGIONS, FilterCriteria
from llm_synthesis.adapter import BaseLLMAdapter, MockLLMAdapter, OpenAILLMAdapter
from llm_synthesis.prompt_builder import InsightPromptBuilder


@lru_cache(maxsize=1)
def get_record_store() -> RecordStoreConnector:
    """
    Build and cache the record store connector.
    """

    return RecordStoreConnector(settings=get_record_store_settings())


def _build_adapter() -> BaseLLMAdapter:
    """Instantiate the adapter selected by the LLM_ADAPTER env var.

    LLM_ADAPTER=mock   -> MockLLMAdapter  (testing, no API key required)
    LLM_ADAPTER=openai -> OpenAILLMAdapter (default)
    """
    settings = get_llm_settings()
    if settings.adapter == "mock":
        return MockLLMAdapter()

    return OpenAILLMAdapter(
        model=settings.model,
        max_tokens=settings.max_tokens,
        api_key=settings.api_key,
        base_url=settings.base_url,
    )


@lru_cache(maxsize=1)
def get_llm_adapter() -> BaseLLMAdapter:
    return _build_adapter()


@lru_cache(maxsize=1)
def get_prompt_builder() -> InsightPromptBuilder:
    return InsightPromptBuilder()


def get_filter_criteria(
    date_from: date | None = Query(
        default=None,
        description="Inclusive start date (YYYY-MM-DD). Defaults to the trailing window start.",
    ),
    date_to: date | None = Query(
        default=None,
        description="Inclusive end date (YYYY-MM-DD). Defaults to today.",
    ),
    region: list[str] | None = Query(
        default=None,
        description=f'Repeatable region filter; omit or pass "{ALL_REGIONS}" for every region.',
    ),
    department: list[str] | None = Query(
        default=None,
        description=f'Repeatable department filter; omit or pass "{ALL_DEPARTMENTS}" for every department.',
    ),
) -> FilterCriteria:
    """
    Build :class:`FilterCriteria` from query parameters on top of the default window.

    An inverted window is passed through and yields an empty view.
    """

    default = FilterCriteria.default(window_months=get_dashboard_settings().default_window_months)
    return FilterCriteria(
        date_from=date_from or default.date_from,
        date_to=date_to or default.date_to,
        selected_regions=tuple(region or (ALL_REGIONS,)),
        selected_departments=tuple(department or (ALL_DEPARTMENTS,)),
    )
