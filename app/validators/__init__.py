"""
app/validators package marker.
"""

from app.validators.schema_validator import SchemaValidator, TableInput, coerce_table

__all__ = [
    "SchemaValidator",
    "TableInput",
    "coerce_table",
]
