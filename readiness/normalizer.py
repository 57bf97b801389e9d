"""
readiness/normalizer.py

Cell-level repair and standardization of a structurally valid Dataset.

Produces typed NormalizedRow values, a list of ValidationIssue details and a
quality score. Rows carrying an ``error`` issue are excluded from scoring.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any

from app.domain.readiness import (
    CANONICAL_FIELDS,
    NUMERIC_FIELDS,
    REGION_FIELD,
    Dataset,
    NormalizationReport,
    NormalizedRow,
    RawRow,
    Severity,
    ValidationIssue,
)
from app.mappers.field_mapper import FieldMapper
from readiness.errors import SchemaError

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS: tuple[str, ...] = ("$", "€", "£", "¥", "₹")

EQUIPMENT_SCORE_MAX = 10.0


# ---------------------------------------------------------------------------
# Missing-value policies
# ---------------------------------------------------------------------------


class MissingValuePolicy(ABC):
    """
    Decides what a missing numeric cell becomes.

    ``resolve`` returns the replacement value (or None to leave the cell
    unusable), the issue severity and the issue message.
    """

    name: str = "abstract"

    @abstractmethod
    def resolve(self, column: str) -> tuple[float | None, str, str]:
        raise NotImplementedError("Subclasses must implement resolve()")


class ZeroFillPolicy(MissingValuePolicy):
    """Missing numeric cells default to 0 and raise a warning."""

    name = "zero"

    def resolve(self, column: str) -> tuple[float | None, str, str]:
        return 0.0, Severity.WARNING, "Missing value defaulted to 0."


class RejectRowPolicy(MissingValuePolicy):
    """Missing numeric cells exclude the row."""

    name = "reject"

    def resolve(self, column: str) -> tuple[float | None, str, str]:
        return None, Severity.ERROR, "Required numeric value is missing."


MISSING_VALUE_POLICIES: dict[str, type[MissingValuePolicy]] = {
    ZeroFillPolicy.name: ZeroFillPolicy,
    RejectRowPolicy.name: RejectRowPolicy,
}


def get_missing_value_policy(name: str) -> MissingValuePolicy:
    try:
        return MISSING_VALUE_POLICIES[name]()
    except KeyError as exc:
        raise ValueError(
            f"Unknown missing-value policy '{name}'. "
            f"Allowed values: {sorted(MISSING_VALUE_POLICIES)}."
        ) from exc


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------


class CellNormalizer:
    """
    Canonicalizes headers, coerces numeric cells and applies the
    missing-value policy. Stateless between calls.
    """

    def __init__(
        self,
        *,
        missing_policy: MissingValuePolicy | None = None,
        mapper: FieldMapper | None = None,
    ) -> None:
        self._missing_policy = missing_policy or ZeroFillPolicy()
        self._mapper = mapper or FieldMapper()

    @property
    def missing_policy(self) -> MissingValuePolicy:
        return self._missing_policy

    def normalize(self, dataset: Dataset) -> NormalizationReport:
        """
        Normalize every row of ``dataset``.

        Quality score = 1 - (error issues / total cells).
        """

        mapping = self._mapper.resolve(dataset.source_headers)
        if not mapping.is_complete:
            raise SchemaError(
                "Dataset headers do not resolve to the required field set.",
                errors=[issue.message for issue in mapping.issues],
                dataset_id=dataset.dataset_id,
            )

        accepted: list[NormalizedRow] = []
        excluded: list[int] = []
        issues: list[ValidationIssue] = []

        for raw_row in dataset.rows:
            row, row_issues = self._normalize_row(raw_row, mapping.canonical_to_source)
            issues.extend(row_issues)
            if row is None:
                excluded.append(raw_row.row_number)
                continue
            accepted.append(row)

        total_cells = dataset.row_count * len(CANONICAL_FIELDS)
        error_count = sum(1 for issue in issues if issue.severity == Severity.ERROR)
        quality_score = 1.0 - (error_count / total_cells) if total_cells else 0.0

        logger.debug(
            "Normalized dataset %s: %d accepted, %d excluded, %d issues, quality=%.4f",
            dataset.dataset_id,
            len(accepted),
            len(excluded),
            len(issues),
            quality_score,
        )
        return NormalizationReport(
            rows=tuple(accepted),
            excluded_rows=tuple(excluded),
            issues=tuple(issues),
            quality_score=quality_score,
        )

    def _normalize_row(
        self,
        raw_row: RawRow,
        canonical_to_source: dict[str, str],
    ) -> tuple[NormalizedRow | None, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []
        row_number = raw_row.row_number

        region_value = raw_row.get(canonical_to_source[REGION_FIELD])
        region_id = "" if _is_blank(region_value) else str(region_value).strip()
        if not region_id:
            issues.append(
                ValidationIssue(
                    row_number=row_number,
                    column=REGION_FIELD,
                    message="Region identifier is missing.",
                    severity=Severity.ERROR,
                    value=_stringify(region_value),
                )
            )

        numbers: dict[str, float] = {}
        for column in NUMERIC_FIELDS:
            value = self._parse_numeric(
                value=raw_row.get(canonical_to_source[column]),
                row_number=row_number,
                column=column,
                issues=issues,
            )
            if value is not None:
                numbers[column] = value

        has_error = any(issue.severity == Severity.ERROR for issue in issues)
        if has_error or len(numbers) != len(NUMERIC_FIELDS):
            return None, issues

        return NormalizedRow(row_number=row_number, region_id=region_id, **numbers), issues

    def _parse_numeric(
        self,
        *,
        value: Any,
        row_number: int,
        column: str,
        issues: list[ValidationIssue],
    ) -> float | None:
        if _is_blank(value):
            replacement, severity, message = self._missing_policy.resolve(column)
            issues.append(
                ValidationIssue(
                    row_number=row_number,
                    column=column,
                    message=message,
                    severity=severity,
                    value=_stringify(value),
                )
            )
            return replacement

        number = coerce_number(value)
        if number is None:
            issues.append(
                ValidationIssue(
                    row_number=row_number,
                    column=column,
                    message="Value is not a finite number.",
                    severity=Severity.ERROR,
                    value=_stringify(value),
                )
            )
            return None

        if number < 0:
            issues.append(
                ValidationIssue(
                    row_number=row_number,
                    column=column,
                    message="Value must not be negative.",
                    severity=Severity.ERROR,
                    value=_stringify(value),
                )
            )
            return None

        if column == "equipment_score" and number > EQUIPMENT_SCORE_MAX:
            issues.append(
                ValidationIssue(
                    row_number=row_number,
                    column=column,
                    message=f"equipment_score must be within [0, {EQUIPMENT_SCORE_MAX:g}].",
                    severity=Severity.ERROR,
                    value=_stringify(value),
                )
            )
            return None

        return number


def coerce_number(value: Any) -> float | None:
    """
    Coerce numbers and numeric-looking strings to float.

    Strips surrounding whitespace, currency symbols and thousands
    separators. Returns None for anything else, including booleans and
    non-finite values.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else None

    raw = str(value).strip()
    for symbol in CURRENCY_SYMBOLS:
        raw = raw.replace(symbol, "")
    raw = raw.replace(",", "").strip()
    if not raw:
        return None

    try:
        number = float(Decimal(raw))
    except (InvalidOperation, ValueError):
        return None
    return number if math.isfinite(number) else None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def _stringify(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
