"""
app/mappers package marker.
"""

from app.mappers.field_mapper import (
    DEFAULT_FIELD_ALIASES,
    FieldMapper,
    FieldMapping,
    FieldMappingIssue,
    canonical_metric_name,
    normalize_header,
)

__all__ = [
    "DEFAULT_FIELD_ALIASES",
    "FieldMapper",
    "FieldMapping",
    "FieldMappingIssue",
    "canonical_metric_name",
    "normalize_header",
]
