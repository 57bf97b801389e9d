"""
readiness/rescaler.py

Dataset-relative min-max rescaling of derived metrics.

Two explicit passes over a complete set of DerivedRow values: collect the
extrema of each metric, then rescale. The result does not depend on row
order.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from app.domain.readiness import METRIC_NAMES, DerivedRow, MetricExtrema, RescaledRow

NEUTRAL_MIDPOINT = 0.5


class MinMaxRescaler:
    """
    Rescales each metric independently to [0, 1].

    Undefined values (``None``) stay undefined and do not take part in the
    extrema. When max == min every defined value maps to 0.5.
    """

    def extrema(self, rows: Sequence[DerivedRow]) -> tuple[MetricExtrema, ...]:
        """
        First pass: min/max over the defined values of every metric.
        """

        matrix = self._to_matrix(rows)
        result: list[MetricExtrema] = []
        for column, metric in enumerate(METRIC_NAMES):
            values = matrix[:, column]
            defined = values[~np.isnan(values)]
            if defined.size == 0:
                result.append(MetricExtrema(metric=metric, minimum=None, maximum=None, defined_count=0))
                continue
            result.append(
                MetricExtrema(
                    metric=metric,
                    minimum=float(defined.min()),
                    maximum=float(defined.max()),
                    defined_count=int(defined.size),
                )
            )
        return tuple(result)

    def rescale(self, rows: Sequence[DerivedRow]) -> tuple[RescaledRow, ...]:
        """
        Second pass: map every defined value through its metric's extrema.
        """

        extrema = {item.metric: item for item in self.extrema(rows)}
        return tuple(
            RescaledRow(
                region_id=row.region_id,
                metrics={
                    metric: self._rescale_value(row.metrics.get(metric), extrema[metric])
                    for metric in METRIC_NAMES
                },
            )
            for row in rows
        )

    @staticmethod
    def _rescale_value(value: float | None, extrema: MetricExtrema) -> float | None:
        if value is None or extrema.minimum is None or extrema.maximum is None:
            return None
        span = extrema.maximum - extrema.minimum
        if span == 0:
            return NEUTRAL_MIDPOINT
        scaled = (value - extrema.minimum) / span
        return max(0.0, min(1.0, scaled))

    @staticmethod
    def _to_matrix(rows: Sequence[DerivedRow]) -> np.ndarray:
        """
        Build an (n_rows, n_metrics) float array with np.nan for undefined.
        """

        matrix = np.full((len(rows), len(METRIC_NAMES)), np.nan, dtype=np.float64)
        for i, row in enumerate(rows):
            for j, metric in enumerate(METRIC_NAMES):
                value = row.metrics.get(metric)
                if value is not None:
                    matrix[i, j] = float(value)
        return matrix
