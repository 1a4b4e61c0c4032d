"""
app/api/routers/dashboard_router.py

Read-only dashboard endpoints.

GET /dashboard/summary
GET /export/csv

Shared query parameters
-----------------------
date_from  : inclusive start date (YYYY-MM-DD), default: trailing window start
date_to    : inclusive end date (YYYY-MM-DD), default: today
region     : repeatable; omitted means every region
department : repeatable; omitted means every department

Both endpoints fetch the two collections, apply the filter and delegate
every computation to :class:`DashboardSession`; the router only handles
HTTP plumbing.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, Response

from app.api.dependencies import get_filter_criteria, get_record_store
from app.connectors.record_store import RecordStoreConnector
from app.services.dashboard_session import DashboardSession
from app.services.export_service import EXPORT_CONTENT_TYPE, ExportUnavailableError
from app.services.filter_engine import FilterCriteria

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


async def _load_session(
    store: RecordStoreConnector,
    criteria: FilterCriteria,
) -> DashboardSession:
    session = DashboardSession(store=store)
    await session.refresh()
    session.set_criteria(criteria, debounce=False)
    return session


@router.get("/dashboard/summary", summary="KPIs and recommendations for the filtered view")
async def dashboard_summary(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    store: RecordStoreConnector = Depends(get_record_store),
) -> dict[str, Any]:
    session = await _load_session(store, criteria)
    try:
        return session.summary()
    finally:
        await session.close()


@router.get("/export/csv", summary="Download the filtered collections as CSV")
async def export_csv(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    store: RecordStoreConnector = Depends(get_record_store),
) -> Response:
    session = await _load_session(store, criteria)
    try:
        artifact = session.export()
    except ExportUnavailableError as exc:
        logger.info("CSV export unavailable: %s", exc)
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)})
    finally:
        await session.close()

    logger.info(
        "CSV export filename=%s financial=%d process=%d",
        artifact.filename,
        len(session.view.financial),
        len(session.view.process),
    )
    return Response(
        content=artifact.content_bytes,
        media_type=EXPORT_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )
