"""
app/domain package marker.
"""

from app.domain.readiness import (
    CANONICAL_FIELDS,
    METRIC_NAMES,
    NUMERIC_FIELDS,
    REGION_FIELD,
    Dataset,
    EntryStatus,
    Explanation,
    ProvenanceEntry,
    RawTable,
    RegionExplanation,
    ScoreResult,
    ScoreRun,
    Severity,
    Stage,
    WeightConfig,
)

__all__ = [
    "CANONICAL_FIELDS",
    "METRIC_NAMES",
    "NUMERIC_FIELDS",
    "REGION_FIELD",
    "Dataset",
    "EntryStatus",
    "Explanation",
    "ProvenanceEntry",
    "RawTable",
    "RegionExplanation",
    "ScoreResult",
    "ScoreRun",
    "Severity",
    "Stage",
    "WeightConfig",
]
