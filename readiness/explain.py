"""
readiness/explain.py

Explainability ranker: the top three contributors behind a score.
"""

from __future__ import annotations

from app.domain.readiness import ContributingFactor, Explanation, MetricContribution, ScoreResult
from readiness.errors import InsufficientFactorsError

TOP_FACTOR_COUNT = 3


def _rank_key(item: MetricContribution) -> tuple[float, str]:
    # Larger |contribution| first; equal magnitudes fall back to metric name.
    return (-abs(item.contribution or 0.0), item.metric)


class ExplainabilityRanker:
    """
    Selects the contributions with the largest absolute value.

    Ordering never depends on input order: ties are broken by ascending
    canonical metric name.
    """

    def __init__(self, *, top_n: int = TOP_FACTOR_COUNT) -> None:
        self._top_n = top_n

    def rank(self, result: ScoreResult, *, strict: bool = False) -> Explanation:
        """
        Rank the defined contributions of ``result``.

        With fewer than ``top_n`` defined metrics the available factors are
        returned unpadded and the explanation is flagged ``partial``; in
        strict mode InsufficientFactorsError is raised instead, carrying
        those factors.
        """

        ordered = sorted(result.defined_contributions(), key=_rank_key)
        factors = tuple(
            ContributingFactor(
                metric=item.metric,
                weight=item.weight,
                normalized_value=float(item.rescaled_value or 0.0),
                contribution=float(item.contribution or 0.0),
                rank=rank,
            )
            for rank, item in enumerate(ordered[: self._top_n], start=1)
        )

        partial = len(factors) < self._top_n
        if partial and strict:
            raise InsufficientFactorsError(
                f"Region '{result.region_id}' has {len(factors)} defined metrics; "
                f"{self._top_n} are required.",
                region_id=result.region_id,
                factors=factors,
            )
        return Explanation(region_id=result.region_id, factors=factors, partial=partial)
