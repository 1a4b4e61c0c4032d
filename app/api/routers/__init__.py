"""
app/api/routers package marker.
"""

from app.api.routers.dashboard_router import router as dashboard_router
from app.api.routers.insights_router import router as insights_router

__all__ = [
    "dashboard_router",
    "insights_router",
]
