from __future__ import annotations

import pytest

from app.domain.readiness import METRIC_NAMES, MetricContribution, ScoreResult
from readiness.errors import InsufficientFactorsError
from readiness.explain import ExplainabilityRanker


def _result(contributions: dict[str, float | None], region_id: str = "A") -> ScoreResult:
    items = tuple(
        MetricContribution(
            metric=name,
            weight=1.0,
            rescaled_value=None if contributions.get(name) is None else 0.5,
            contribution=contributions.get(name),
        )
        for name in METRIC_NAMES
    )
    return ScoreResult(
        region_id=region_id,
        config_id="cfg",
        score=50.0,
        unclamped_score=50.0,
        contributions=items,
    )


@pytest.fixture()
def ranker() -> ExplainabilityRanker:
    return ExplainabilityRanker()


class TestExplainabilityRanker:
    def test_returns_exactly_three_by_descending_contribution(self, ranker: ExplainabilityRanker) -> None:
        result = _result(
            {
                "utilization_rate": 10.0,
                "beds_per_capita": 30.0,
                "staffing_ratio": 5.0,
                "equipment_index": 20.0,
                "availability_index": 1.0,
                "budget_per_capita": 0.0,
            }
        )

        explanation = ranker.rank(result)

        assert [f.metric for f in explanation.factors] == [
            "beds_per_capita",
            "equipment_index",
            "utilization_rate",
        ]
        assert [f.rank for f in explanation.factors] == [1, 2, 3]
        assert explanation.partial is False

    def test_ties_break_by_metric_name(self, ranker: ExplainabilityRanker) -> None:
        result = _result(
            {
                "utilization_rate": 33.3,
                "equipment_index": 33.3,
                "availability_index": 0.0,
                "beds_per_capita": 0.0,
                "staffing_ratio": 0.0,
                "budget_per_capita": 0.0,
            }
        )

        explanation = ranker.rank(result)

        assert [f.metric for f in explanation.factors] == [
            "equipment_index",
            "utilization_rate",
            "availability_index",
        ]

    def test_order_does_not_depend_on_input_order(self, ranker: ExplainabilityRanker) -> None:
        result = _result({"utilization_rate": 5.0, "equipment_index": 5.0, "staffing_ratio": 5.0})
        reversed_result = ScoreResult(
            region_id=result.region_id,
            config_id=result.config_id,
            score=result.score,
            unclamped_score=result.unclamped_score,
            contributions=result.contributions[::-1],
        )

        assert ranker.rank(result) == ranker.rank(reversed_result)

    def test_fewer_than_three_defined_is_partial(self, ranker: ExplainabilityRanker) -> None:
        explanation = ranker.rank(_result({"utilization_rate": 60.0, "equipment_index": 40.0}))

        assert explanation.partial is True
        assert [f.metric for f in explanation.factors] == ["utilization_rate", "equipment_index"]

    def test_strict_mode_raises_with_available_factors(self, ranker: ExplainabilityRanker) -> None:
        with pytest.raises(InsufficientFactorsError) as excinfo:
            ranker.rank(_result({"staffing_ratio": 100.0}), strict=True)

        assert excinfo.value.region_id == "A"
        assert [f.metric for f in excinfo.value.factors] == ["staffing_ratio"]

    def test_no_defined_metric_gives_empty_partial(self, ranker: ExplainabilityRanker) -> None:
        explanation = ranker.rank(_result({}))

        assert explanation.factors == ()
        assert explanation.partial is True

    def test_custom_top_n(self) -> None:
        ranker = ExplainabilityRanker(top_n=1)

        explanation = ranker.rank(_result({"utilization_rate": 1.0, "equipment_index": 2.0}))

        assert [f.metric for f in explanation.factors] == ["equipment_index"]
        assert explanation.partial is False
