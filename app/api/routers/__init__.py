"""
app/api/routers package marker.
"""

from app.api.routers.readiness_router import router as readiness_router

__all__ = [
    "readiness_router",
]
