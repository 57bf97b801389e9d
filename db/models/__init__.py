"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.provenance_entry import ProvenanceEntryRecord
from db.models.weight_config import WeightConfigRecord

__all__ = [
    "ProvenanceEntryRecord",
    "WeightConfigRecord",
]
