"""
app/domain/readiness.py

Domain models used by the readiness scoring pipeline.

Undefined metric values are represented as ``None`` throughout (derived,
rescaled and contribution values); they are never collapsed into 0.0.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Sequence

REGION_FIELD = "region"

NUMERIC_FIELDS: tuple[str, ...] = (
    "total_beds",
    "occupied_beds",
    "available_beds",
    "staff_count",
    "equipment_score",
    "population",
    "budget_allocation",
)

CANONICAL_FIELDS: tuple[str, ...] = (REGION_FIELD, *NUMERIC_FIELDS)

METRIC_NAMES: tuple[str, ...] = (
    "utilization_rate",
    "beds_per_capita",
    "staffing_ratio",
    "equipment_index",
    "availability_index",
    "budget_per_capita",
)


class Severity:
    WARNING = "warning"
    ERROR = "error"


class Stage:
    VALIDATE = "validate"
    NORMALIZE = "normalize"
    DERIVE = "derive"
    SCORE = "score"
    EXPLAIN = "explain"

    ALL: tuple[str, ...] = (VALIDATE, NORMALIZE, DERIVE, SCORE, EXPLAIN)


class EntryStatus:
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"

    ALL: tuple[str, ...] = (SUCCESS, FAILED, PARTIAL)


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


# ---------------------------------------------------------------------------
# Input shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawTable:
    """
    Untyped table as handed over by the transport layer.
    """

    headers: tuple[str, ...]
    rows: tuple[tuple[Any, ...], ...]

    @classmethod
    def from_records(cls, records: Sequence[Mapping[str, Any]]) -> "RawTable":
        """
        Build a table from a sequence of mappings keyed by header.

        Headers are taken from the first record in key order; later records
        are read by those headers, so a missing key becomes ``None``.
        """

        if not records:
            return cls(headers=(), rows=())
        headers = tuple(str(key) for key in records[0].keys())
        rows = tuple(
            tuple(record.get(header) for header in headers)
            for record in records
        )
        return cls(headers=headers, rows=rows)


@dataclass(frozen=True)
class RawRow:
    """
    One region's raw fields keyed by source header, values as supplied.
    """

    row_number: int
    values: Mapping[str, Any]

    def get(self, header: str) -> Any:
        return self.values.get(header)


@dataclass(frozen=True)
class Dataset:
    """
    Structurally validated table, rows kept in input order.
    """

    dataset_id: str
    rows: tuple[RawRow, ...]
    source_headers: tuple[str, ...]
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def row_count(self) -> int:
        return len(self.rows)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationIssue:
    """
    One cell-level quality issue found while normalizing a row.
    """

    row_number: int
    column: str
    message: str
    severity: str
    value: str | None = None


@dataclass(frozen=True)
class NormalizedRow:
    """
    Accepted row with every numeric field coerced to float.
    """

    row_number: int
    region_id: str
    total_beds: float
    occupied_beds: float
    available_beds: float
    staff_count: float
    equipment_score: float
    population: float
    budget_allocation: float


@dataclass(frozen=True)
class NormalizationReport:
    """
    Outcome of cell normalization over a whole Dataset.
    """

    rows: tuple[NormalizedRow, ...]
    excluded_rows: tuple[int, ...]
    issues: tuple[ValidationIssue, ...]
    quality_score: float

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == Severity.WARNING)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DerivedRow:
    """
    Six derived ratios for one region; ``None`` marks an undefined ratio.
    """

    region_id: str
    metrics: Mapping[str, float | None]

    def defined(self) -> dict[str, float]:
        return {name: value for name, value in self.metrics.items() if value is not None}


@dataclass(frozen=True)
class RescaledRow:
    """
    Dataset-relative [0, 1] metrics for one region; ``None`` stays undefined.
    """

    region_id: str
    metrics: Mapping[str, float | None]


@dataclass(frozen=True)
class MetricExtrema:
    """
    Min/max of the defined values of one metric across a Dataset.
    """

    metric: str
    minimum: float | None
    maximum: float | None
    defined_count: int


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeightConfig:
    """
    Immutable, versioned weight vector.

    Build through ``readiness.weights.build_weight_config`` so that metric
    names are canonicalized and weights validated.
    """

    config_id: str
    weights: Mapping[str, float]

    def __post_init__(self) -> None:
        if not isinstance(self.weights, MappingProxyType):
            object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))

    def weight_for(self, metric: str) -> float:
        return self.weights.get(metric, 0.0)

    def as_dict(self) -> dict[str, float]:
        return dict(self.weights)


@dataclass(frozen=True)
class MetricContribution:
    """
    One metric's weighted share of a region's score.
    """

    metric: str
    weight: float
    rescaled_value: float | None
    contribution: float | None

    @property
    def defined(self) -> bool:
        return self.contribution is not None


@dataclass(frozen=True)
class ScoreResult:
    """
    Composite readiness score for one region under one WeightConfig.

    ``score`` is ``None`` when ``insufficient_metrics`` is set.
    """

    region_id: str
    config_id: str
    score: float | None
    unclamped_score: float | None
    contributions: tuple[MetricContribution, ...]
    insufficient_metrics: bool = False

    def defined_contributions(self) -> tuple[MetricContribution, ...]:
        return tuple(item for item in self.contributions if item.defined)


@dataclass(frozen=True)
class ContributingFactor:
    metric: str
    weight: float
    normalized_value: float
    contribution: float
    rank: int


@dataclass(frozen=True)
class Explanation:
    """
    Ranked top contributors for one region. ``partial`` is set when fewer
    than three metrics were defined.
    """

    region_id: str
    factors: tuple[ContributingFactor, ...]
    partial: bool = False


@dataclass(frozen=True)
class ScoreSnapshot:
    """
    Complete, committed result set for one Dataset under one WeightConfig.
    """

    dataset_id: str
    config_id: str
    version: int
    results: tuple[ScoreResult, ...]
    explanations: tuple[Explanation, ...]
    rescaled: tuple[RescaledRow, ...]
    committed_at: datetime = field(default_factory=_utc_now)

    def result_for(self, region_id: str) -> ScoreResult | None:
        for result in self.results:
            if result.region_id == region_id:
                return result
        return None

    def explanation_for(self, region_id: str) -> Explanation | None:
        for explanation in self.explanations:
            if explanation.region_id == region_id:
                return explanation
        return None

    def rescaled_for(self, region_id: str) -> RescaledRow | None:
        for row in self.rescaled:
            if row.region_id == region_id:
                return row
        return None


@dataclass(frozen=True)
class ScoreRun:
    """
    Return value of one scoring run.
    """

    snapshot: ScoreSnapshot
    report: NormalizationReport

    @property
    def results(self) -> tuple[ScoreResult, ...]:
        return self.snapshot.results

    @property
    def factors(self) -> tuple[tuple[ContributingFactor, ...], ...]:
        return tuple(explanation.factors for explanation in self.snapshot.explanations)


@dataclass(frozen=True)
class RegionExplanation:
    """
    Answer to ``explain(dataset_id, region_id)``.
    """

    dataset_id: str
    region_id: str
    config_id: str
    score: float | None
    top_contributors: tuple[ContributingFactor, ...]
    rescaled_metrics: Mapping[str, float | None]
    partial: bool = False


# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProvenanceEntry:
    """
    Immutable record of one pipeline stage invocation.

    ``sequence`` is 0 until the ledger assigns one on ``record``.
    """

    dataset_id: str
    stage: str
    status: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    input_refs: tuple[str, ...] = ()
    output_ref: str | None = None
    errors: tuple[str, ...] = ()
    duration_ms: float = 0.0
    supersedes: int | None = None
    sequence: int = 0
    recorded_at: datetime = field(default_factory=_utc_now)
