"""
app/services package marker.
"""

from app.services.readiness_service import ReadinessService, get_readiness_service

__all__ = [
    "ReadinessService",
    "get_readiness_service",
]
