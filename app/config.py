"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class RecordStoreSettings:
    """
    Tabular record store connection and HTTP retry settings.
    """

    base_url: str | None = None
    api_key: str | None = None
    financial_table: str = "financial_close_metrics"
    process_table: str = "process_efficiency"
    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0


@dataclass(frozen=True)
class NarrativeSettings:
    """
    Client-side settings for the narrative-generation endpoint.
    """

    endpoint_url: str | None = None
    api_key: str | None = None
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class LLMSettings:
    """
    Server-side language model adapter settings.
    """

    adapter: str = "openai"
    model: str = "gpt-4o-mini"
    max_tokens: int = 500
    api_key: str | None = None
    base_url: str | None = None


@dataclass(frozen=True)
class DashboardSettings:
    """
    Timing and sizing knobs for the dashboard session.
    """

    filter_debounce_seconds: float = 0.5
    insight_debounce_seconds: float = 1.0
    min_query_interval_seconds: float = 5.0
    min_query_length: int = 10
    default_window_months: int = 36
    query_sample_size: int = 20


@lru_cache(maxsize=1)
def get_record_store_settings() -> RecordStoreSettings:
    """
    Return cached record store settings from environment variables.
    """

    return RecordStoreSettings(
        base_url=_get_optional_str_env("RECORD_STORE_URL"),
        api_key=_get_optional_str_env("RECORD_STORE_API_KEY"),
        financial_table=_get_str_env("RECORD_STORE_FINANCIAL_TABLE", "financial_close_metrics"),
        process_table=_get_str_env("RECORD_STORE_PROCESS_TABLE", "process_efficiency"),
        timeout_seconds=max(1.0, _get_float_env("RECORD_STORE_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("RECORD_STORE_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("RECORD_STORE_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("RECORD_STORE_BACKOFF_MULTIPLIER", 2.0)),
    )


@lru_cache(maxsize=1)
def get_narrative_settings() -> NarrativeSettings:
    """
    Return cached narrative endpoint settings from environment variables.
    """

    return NarrativeSettings(
        endpoint_url=_get_optional_str_env("NARRATIVE_ENDPOINT_URL"),
        api_key=_get_optional_str_env("NARRATIVE_API_KEY"),
        timeout_seconds=max(1.0, _get_float_env("NARRATIVE_TIMEOUT_SECONDS", 30.0)),
    )


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """
    Return cached LLM adapter settings from environment variables.
    """

    return LLMSettings(
        adapter=_get_str_env("LLM_ADAPTER", "openai").lower(),
        model=_get_str_env("LLM_MODEL", "gpt-4o-mini"),
        max_tokens=max(1, _get_int_env("LLM_MAX_TOKENS", 500)),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
    )


@lru_cache(maxsize=1)
def get_dashboard_settings() -> DashboardSettings:
    """
    Return cached dashboard session settings from environment variables.
    """

    return DashboardSettings(
        filter_debounce_seconds=max(0.0, _get_float_env("FILTER_DEBOUNCE_SECONDS", 0.5)),
        insight_debounce_seconds=max(0.0, _get_float_env("INSIGHT_DEBOUNCE_SECONDS", 1.0)),
        min_query_interval_seconds=max(0.0, _get_float_env("MIN_QUERY_INTERVAL_SECONDS", 5.0)),
        min_query_length=max(1, _get_int_env("MIN_QUERY_LENGTH", 10)),
        default_window_months=max(1, _get_int_env("DEFAULT_WINDOW_MONTHS", 36)),
        query_sample_size=max(1, _get_int_env("QUERY_SAMPLE_SIZE", 20)),
    )
