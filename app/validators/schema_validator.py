"""
app/validators/schema_validator.py

Structural validation of incoming readiness tables.

Rejection is all-or-nothing: either a complete Dataset is produced or one of
SchemaError / SizeError / DuplicateKeyError is raised and nothing is built.
"""

from __future__ import annotations

import uuid
from types import MappingProxyType
from typing import Any, Mapping, Sequence, Union

import pandas as pd

from app.config import MAX_DATASET_ROWS
from app.domain.readiness import CANONICAL_FIELDS, REGION_FIELD, Dataset, RawRow, RawTable
from app.mappers.field_mapper import FieldMapper
from readiness.errors import DuplicateKeyError, SchemaError, SizeError

TableInput = Union[RawTable, pd.DataFrame, Sequence[Mapping[str, Any]]]

EXPECTED_COLUMN_COUNT = len(CANONICAL_FIELDS)


def coerce_table(table: TableInput) -> RawTable:
    """
    Bring any supported table shape into a RawTable.
    """

    if isinstance(table, RawTable):
        return table
    if isinstance(table, pd.DataFrame):
        cleaned = table.astype(object).where(pd.notna(table), None)
        return RawTable(
            headers=tuple(str(column) for column in cleaned.columns),
            rows=tuple(tuple(row) for row in cleaned.itertuples(index=False, name=None)),
        )
    if isinstance(table, (str, bytes)):
        raise SchemaError("Table must be a sequence of rows, not raw text.")
    return RawTable.from_records(list(table))


class SchemaValidator:
    """
    Checks column set, row count, row width and region uniqueness.
    """

    def __init__(
        self,
        *,
        max_rows: int = MAX_DATASET_ROWS,
        mapper: FieldMapper | None = None,
    ) -> None:
        self._max_rows = min(MAX_DATASET_ROWS, max(1, max_rows))
        self._mapper = mapper or FieldMapper()

    def validate(self, table: TableInput, *, dataset_id: str | None = None) -> Dataset:
        """
        Validate one table and build a Dataset from it.

        Raises:
            SchemaError: column count is not 8, a header is unknown or
                repeated, or a row's width differs from the header width.
            SizeError: zero rows or more than the configured maximum.
            DuplicateKeyError: two rows share a region identifier.
        """

        dataset_id = dataset_id or uuid.uuid4().hex
        raw = coerce_table(table)
        headers = raw.headers

        if len(headers) != EXPECTED_COLUMN_COUNT:
            raise SchemaError(
                f"Expected {EXPECTED_COLUMN_COUNT} columns, got {len(headers)}.",
                errors=[f"columns: {list(headers)}"],
                dataset_id=dataset_id,
            )

        mapping = self._mapper.resolve(headers)
        if not mapping.is_complete:
            raise SchemaError(
                "Table columns do not match the required field set.",
                errors=[issue.message for issue in mapping.issues],
                dataset_id=dataset_id,
            )

        row_count = len(raw.rows)
        if row_count == 0:
            raise SizeError("Table has no rows.", dataset_id=dataset_id)
        if row_count > self._max_rows:
            raise SizeError(
                f"Table has {row_count} rows; at most {self._max_rows} are allowed.",
                dataset_id=dataset_id,
            )

        width_errors = [
            f"row {row_number}: expected {EXPECTED_COLUMN_COUNT} values, got {len(row)}"
            for row_number, row in enumerate(raw.rows, start=1)
            if len(row) != EXPECTED_COLUMN_COUNT
        ]
        if width_errors:
            raise SchemaError(
                "Rows do not match the header width.",
                errors=width_errors,
                dataset_id=dataset_id,
            )

        region_header = mapping.source_for(REGION_FIELD)
        region_index = headers.index(region_header)
        duplicate_errors = self._find_duplicate_regions(raw.rows, region_index)
        if duplicate_errors:
            raise DuplicateKeyError(
                "Region identifiers must be unique within a dataset.",
                errors=duplicate_errors,
                dataset_id=dataset_id,
            )

        rows = tuple(
            RawRow(
                row_number=row_number,
                values=MappingProxyType(dict(zip(headers, row))),
            )
            for row_number, row in enumerate(raw.rows, start=1)
        )
        return Dataset(dataset_id=dataset_id, rows=rows, source_headers=headers)

    @staticmethod
    def _find_duplicate_regions(
        rows: Sequence[Sequence[Any]],
        region_index: int,
    ) -> list[str]:
        # Blank identifiers are a per-row quality error, not a duplicate.
        first_seen: dict[str, int] = {}
        errors: list[str] = []
        for row_number, row in enumerate(rows, start=1):
            value = row[region_index]
            if value is None or str(value).strip() == "":
                continue
            key = str(value).strip().casefold()
            if key in first_seen:
                errors.append(
                    f"row {row_number}: region '{str(value).strip()}' "
                    f"duplicates row {first_seen[key]}"
                )
            else:
                first_seen[key] = row_number
        return errors
