"""
readiness/scoring.py

Weighted composite readiness score.

Formulas (over the metrics defined for the row)::

    unclamped      = 100 * Σ W[m] * r[m] / Σ W[m]
    contribution_m = 100 * W[m] * r[m] / Σ W[m]
    score          = clamp(unclamped, 0, 100)

Undefined metrics are excluded from numerator and denominator and carry a
``None`` contribution. A row with no defined metric, or whose defined
metrics all have weight 0, gets ``score=None`` and ``insufficient_metrics``.
"""

from __future__ import annotations

import logging
import math

from app.domain.readiness import METRIC_NAMES, MetricContribution, RescaledRow, ScoreResult, WeightConfig

logger = logging.getLogger(__name__)

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(value, max_value))


class WeightedScorer:
    """
    Stateless weighted scorer for one rescaled row at a time.
    """

    def score(self, row: RescaledRow, config: WeightConfig) -> ScoreResult:
        defined: dict[str, float] = {
            metric: row.metrics[metric]
            for metric in METRIC_NAMES
            if row.metrics.get(metric) is not None
        }
        weight_total = math.fsum(config.weight_for(metric) for metric in defined)

        if not defined or weight_total == 0:
            logger.debug(
                "Region %s has insufficient metrics under config %s (%d defined).",
                row.region_id,
                config.config_id,
                len(defined),
            )
            return ScoreResult(
                region_id=row.region_id,
                config_id=config.config_id,
                score=None,
                unclamped_score=None,
                contributions=tuple(
                    MetricContribution(
                        metric=metric,
                        weight=config.weight_for(metric),
                        rescaled_value=row.metrics.get(metric),
                        contribution=None,
                    )
                    for metric in METRIC_NAMES
                ),
                insufficient_metrics=True,
            )

        contributions: list[MetricContribution] = []
        for metric in METRIC_NAMES:
            weight = config.weight_for(metric)
            value = defined.get(metric)
            contribution = None if value is None else 100.0 * weight * value / weight_total
            contributions.append(
                MetricContribution(
                    metric=metric,
                    weight=weight,
                    rescaled_value=value,
                    contribution=contribution,
                )
            )

        weighted_sum = math.fsum(config.weight_for(metric) * value for metric, value in defined.items())
        unclamped = 100.0 * weighted_sum / weight_total
        return ScoreResult(
            region_id=row.region_id,
            config_id=config.config_id,
            score=clamp(unclamped, SCORE_MIN, SCORE_MAX),
            unclamped_score=unclamped,
            contributions=tuple(contributions),
        )
