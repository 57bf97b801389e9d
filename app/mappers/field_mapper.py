"""
app/mappers/field_mapper.py

Header canonicalization for readiness tables and weight configs.

Matching is case-, whitespace- and punctuation-insensitive against the fixed
vocabulary in ``app.domain.readiness`` plus a small alias table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from app.domain.readiness import CANONICAL_FIELDS, METRIC_NAMES

DEFAULT_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "region": ("region_id", "region_name", "regionid", "district"),
    "total_beds": ("beds", "bed_count", "total_bed_count"),
    "occupied_beds": ("beds_occupied", "occupied"),
    "available_beds": ("beds_available", "free_beds", "available"),
    "staff_count": ("staff", "staffing", "headcount"),
    "equipment_score": ("equipment", "equipment_rating"),
    "population": ("pop", "population_served"),
    "budget_allocation": ("budget", "allocated_budget"),
}


def normalize_header(header: str) -> str:
    """
    Normalize a column or metric name for flexible matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


@dataclass(frozen=True)
class FieldMappingIssue:
    """
    Structured header resolution problem.
    """

    code: str
    message: str
    source_column: str | None = None
    canonical_field: str | None = None


@dataclass(frozen=True)
class FieldMapping:
    """
    Resolved canonical-to-source header mapping for one table.
    """

    canonical_to_source: dict[str, str]
    source_headers: tuple[str, ...]
    issues: tuple[FieldMappingIssue, ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.issues and set(self.canonical_to_source) == set(CANONICAL_FIELDS)

    def source_for(self, canonical_field: str) -> str:
        return self.canonical_to_source[canonical_field]


class FieldMapper:
    """
    Resolves source headers into the canonical readiness vocabulary.
    """

    def __init__(self, *, aliases: Mapping[str, Sequence[str]] | None = None) -> None:
        alias_source = aliases or DEFAULT_FIELD_ALIASES
        self._lookup: dict[str, str] = {}
        for canonical in CANONICAL_FIELDS:
            self._lookup[normalize_header(canonical)] = canonical
            for alias in alias_source.get(canonical, ()):
                self._lookup.setdefault(normalize_header(alias), canonical)

    def canonical_field(self, header: str) -> str | None:
        return self._lookup.get(normalize_header(header))

    def resolve(self, headers: Sequence[str]) -> FieldMapping:
        """
        Resolve headers, collecting every unknown, duplicate and missing field.
        """

        resolved: dict[str, str] = {}
        issues: list[FieldMappingIssue] = []

        for header in headers:
            canonical = self.canonical_field(str(header))
            if canonical is None:
                issues.append(
                    FieldMappingIssue(
                        code="unknown_column",
                        message=f"Column '{header}' does not match any known field.",
                        source_column=str(header),
                    )
                )
                continue
            if canonical in resolved:
                issues.append(
                    FieldMappingIssue(
                        code="duplicate_column",
                        message=(
                            f"Columns '{resolved[canonical]}' and '{header}' "
                            f"both map to '{canonical}'."
                        ),
                        source_column=str(header),
                        canonical_field=canonical,
                    )
                )
                continue
            resolved[canonical] = str(header)

        for canonical in CANONICAL_FIELDS:
            if canonical not in resolved:
                issues.append(
                    FieldMappingIssue(
                        code="missing_column",
                        message=f"Required field '{canonical}' has no matching column.",
                        canonical_field=canonical,
                    )
                )

        return FieldMapping(
            canonical_to_source=resolved,
            source_headers=tuple(str(header) for header in headers),
            issues=tuple(issues),
        )


_METRIC_LOOKUP: dict[str, str] = {normalize_header(name): name for name in METRIC_NAMES}


def canonical_metric_name(name: str) -> str | None:
    """
    Map ``utilizationRate``, ``Utilization Rate`` or ``utilization_rate`` to
    ``utilization_rate``. Returns None for unknown metrics.
    """

    return _METRIC_LOOKUP.get(normalize_header(name))
