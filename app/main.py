from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import load_env_files


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - No empty-string values are accepted.
    - LLM_ADAPTER must be 'openai' or 'mock'.
    - LLM API key check is skipped only when LLM_ADAPTER=mock.
    - Numeric knobs, when set, must parse as positive numbers.
    """

    load_env_files()

    errors: list[str] = []

    # --- LLM adapter ----------------------------------------------------
    adapter = os.getenv("LLM_ADAPTER", "openai").strip().lower()
    if adapter not in {"openai", "mock"}:
        errors.append(
            f"LLM_ADAPTER='{adapter}' is not valid. Allowed values: ['mock', 'openai']."
        )

    # --- LLM API key ----------------------------------------------------
    if adapter != "mock":
        llm_api_key = os.getenv("LLM_API_KEY", "").strip()
        openai_api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not llm_api_key and not openai_api_key:
            errors.append(
                "LLM API key is not set. Provide LLM_API_KEY or OPENAI_API_KEY. "
                "Empty strings are not permitted."
            )

    # --- Numeric knobs --------------------------------------------------
    for name in (
        "LLM_MAX_TOKENS",
        "RECORD_STORE_TIMEOUT_SECONDS",
        "NARRATIVE_TIMEOUT_SECONDS",
    ):
        raw = os.getenv(name)
        if raw is None:
            continue
        try:
            valid = float(raw) > 0
        except ValueError:
            valid = False
        if not valid:
            errors.append(f"{name}='{raw}' must be a positive number.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report invalid bodies and query parameters as ``{"error": str}`` with HTTP 400."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    logging.getLogger(__name__).info("Rejected request path=%s errors=%s", request.url.path, messages)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "; ".join(messages) or "Invalid request."},
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="CFO Dashboard Insights API",
        version="1.0.0",
    )
    application.add_exception_handler(RequestValidationError, _validation_error_handler)

    from app.api.routers import dashboard_router, insights_router

    application.include_router(insights_router)
    application.include_router(dashboard_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
