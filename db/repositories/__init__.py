"""
Repository layer exports.
"""

from db.repositories.provenance_repository import SQLAlchemyProvenanceSink
from db.repositories.weight_config_repository import SQLAlchemyWeightConfigStore

__all__ = [
    "SQLAlchemyProvenanceSink",
    "SQLAlchemyWeightConfigStore",
]
