"""
app/schemas package marker.
"""

from app.schemas.readiness import (
    DatasetLoadRequest,
    DatasetResponse,
    ExplanationResponse,
    ProvenanceEntryResponse,
    ProvenanceListResponse,
    ScoreRequest,
    ScoreRunResponse,
    WeightConfigRequest,
    WeightConfigResponse,
)

__all__ = [
    "DatasetLoadRequest",
    "DatasetResponse",
    "ExplanationResponse",
    "ProvenanceEntryResponse",
    "ProvenanceListResponse",
    "ScoreRequest",
    "ScoreRunResponse",
    "WeightConfigRequest",
    "WeightConfigResponse",
]
