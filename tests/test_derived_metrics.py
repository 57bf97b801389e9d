from __future__ import annotations

import pytest

from app.domain.readiness import METRIC_NAMES, NormalizedRow
from readiness.derived import DerivedMetricsCalculator


def _row(**overrides) -> NormalizedRow:
    values = {
        "row_number": 1,
        "region_id": "A",
        "total_beds": 100.0,
        "occupied_beds": 80.0,
        "available_beds": 20.0,
        "staff_count": 50.0,
        "equipment_score": 8.0,
        "population": 1_000_000.0,
        "budget_allocation": 500_000.0,
    }
    values.update(overrides)
    return NormalizedRow(**values)


@pytest.fixture()
def calculator() -> DerivedMetricsCalculator:
    return DerivedMetricsCalculator()


class TestDerivedMetricsCalculator:
    def test_formulas(self, calculator: DerivedMetricsCalculator) -> None:
        derived = calculator.derive(_row())

        assert tuple(derived.metrics) == METRIC_NAMES
        assert derived.metrics["utilization_rate"] == pytest.approx(0.8)
        assert derived.metrics["beds_per_capita"] == pytest.approx(1e-4)
        assert derived.metrics["staffing_ratio"] == pytest.approx(0.5)
        assert derived.metrics["equipment_index"] == pytest.approx(0.8)
        assert derived.metrics["availability_index"] == pytest.approx(0.2)
        assert derived.metrics["budget_per_capita"] == pytest.approx(0.5)

    def test_zero_beds_makes_bed_ratios_undefined(self, calculator: DerivedMetricsCalculator) -> None:
        derived = calculator.derive(_row(total_beds=0.0))

        assert derived.metrics["utilization_rate"] is None
        assert derived.metrics["staffing_ratio"] is None
        assert derived.metrics["availability_index"] is None
        assert derived.metrics["beds_per_capita"] == 0.0
        assert set(derived.defined()) == {"beds_per_capita", "equipment_index", "budget_per_capita"}

    def test_zero_population_makes_per_capita_undefined(self, calculator: DerivedMetricsCalculator) -> None:
        derived = calculator.derive(_row(population=0.0))

        assert derived.metrics["beds_per_capita"] is None
        assert derived.metrics["budget_per_capita"] is None
        assert derived.metrics["utilization_rate"] == pytest.approx(0.8)

    def test_zero_numerator_is_defined_zero(self, calculator: DerivedMetricsCalculator) -> None:
        derived = calculator.derive(_row(occupied_beds=0.0, equipment_score=0.0))

        assert derived.metrics["utilization_rate"] == 0.0
        assert derived.metrics["equipment_index"] == 0.0

    def test_derive_all_keeps_order_and_is_deterministic(self, calculator: DerivedMetricsCalculator) -> None:
        rows = [_row(region_id="A"), _row(region_id="B", occupied_beds=10.0)]

        first = calculator.derive_all(rows)
        second = calculator.derive_all(rows)

        assert [row.region_id for row in first] == ["A", "B"]
        assert first == second
