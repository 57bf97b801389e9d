"""
readiness/derived.py

Deterministic derived-metric calculator.

Formulas
--------
utilization_rate    = occupied_beds / total_beds
beds_per_capita     = total_beds / population
staffing_ratio      = staff_count / total_beds
equipment_index     = equipment_score / 10
availability_index  = available_beds / total_beds
budget_per_capita   = budget_allocation / population

A zero denominator makes the ratio undefined (``None``). It is never
replaced by 0.0 or infinity.
"""

from __future__ import annotations

import logging
from typing import Sequence

from app.domain.readiness import METRIC_NAMES, DerivedRow, NormalizedRow

logger = logging.getLogger(__name__)

EQUIPMENT_SCALE = 10.0


def _ratio(numerator: float, denominator: float) -> float | None:
    if denominator == 0:
        return None
    return numerator / denominator


class DerivedMetricsCalculator:
    """
    Stateless calculator: identical NormalizedRow input always yields an
    identical DerivedRow.
    """

    def derive(self, row: NormalizedRow) -> DerivedRow:
        metrics: dict[str, float | None] = {
            "utilization_rate": _ratio(row.occupied_beds, row.total_beds),
            "beds_per_capita": _ratio(row.total_beds, row.population),
            "staffing_ratio": _ratio(row.staff_count, row.total_beds),
            "equipment_index": row.equipment_score / EQUIPMENT_SCALE,
            "availability_index": _ratio(row.available_beds, row.total_beds),
            "budget_per_capita": _ratio(row.budget_allocation, row.population),
        }
        undefined = [name for name in METRIC_NAMES if metrics[name] is None]
        if undefined:
            logger.debug(
                "Region %s has undefined metrics (zero denominator): %s",
                row.region_id,
                ", ".join(undefined),
            )
        return DerivedRow(
            region_id=row.region_id,
            metrics={name: metrics[name] for name in METRIC_NAMES},
        )

    def derive_all(self, rows: Sequence[NormalizedRow]) -> tuple[DerivedRow, ...]:
        return tuple(self.derive(row) for row in rows)
