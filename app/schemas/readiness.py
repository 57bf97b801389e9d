"""
app/schemas/readiness.py

Request and response schemas for readiness endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.readiness import (
    ContributingFactor,
    ProvenanceEntry,
    RegionExplanation,
    ScoreResult,
    ScoreRun,
    ValidationIssue,
)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class DatasetLoadRequest(BaseModel):
    """
    Parsed table: one header row plus data rows of the same width.
    """

    model_config = ConfigDict(extra="forbid")

    headers: list[str]
    rows: list[list[Any]]
    dataset_id: str | None = Field(default=None, min_length=1, max_length=64)


class WeightConfigRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    config_id: str | None = Field(default=None, min_length=1, max_length=64)
    weights: dict[str, float]


class ScoreRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    config_id: str = Field(min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class DatasetResponse(BaseModel):
    dataset_id: str
    row_count: int = Field(..., ge=1)
    created_at: datetime


class WeightConfigResponse(BaseModel):
    config_id: str
    weights: dict[str, float]


class ValidationIssueResponse(BaseModel):
    row_number: int = Field(..., ge=1)
    column: str
    message: str
    severity: Literal["warning", "error"]
    value: str | None = None

    @classmethod
    def from_domain(cls, issue: ValidationIssue) -> "ValidationIssueResponse":
        return cls(
            row_number=issue.row_number,
            column=issue.column,
            message=issue.message,
            severity=issue.severity,
            value=issue.value,
        )


class ContributingFactorResponse(BaseModel):
    metric: str
    weight: float
    normalized_value: float
    contribution: float
    rank: int = Field(..., ge=1, le=3)

    @classmethod
    def from_domain(cls, factor: ContributingFactor) -> "ContributingFactorResponse":
        return cls(
            metric=factor.metric,
            weight=factor.weight,
            normalized_value=factor.normalized_value,
            contribution=factor.contribution,
            rank=factor.rank,
        )


class MetricContributionResponse(BaseModel):
    metric: str
    weight: float
    rescaled_value: float | None
    contribution: float | None


class ScoreResultResponse(BaseModel):
    region_id: str
    config_id: str
    score: float | None = Field(default=None, ge=0.0, le=100.0)
    insufficient_metrics: bool
    contributions: list[MetricContributionResponse]
    top_contributors: list[ContributingFactorResponse]
    partial: bool

    @classmethod
    def from_domain(
        cls,
        result: ScoreResult,
        factors: tuple[ContributingFactor, ...],
        partial: bool,
    ) -> "ScoreResultResponse":
        return cls(
            region_id=result.region_id,
            config_id=result.config_id,
            score=result.score,
            insufficient_metrics=result.insufficient_metrics,
            contributions=[
                MetricContributionResponse(
                    metric=item.metric,
                    weight=item.weight,
                    rescaled_value=item.rescaled_value,
                    contribution=item.contribution,
                )
                for item in result.contributions
            ],
            top_contributors=[ContributingFactorResponse.from_domain(f) for f in factors],
            partial=partial,
        )


class ScoreRunResponse(BaseModel):
    dataset_id: str
    config_id: str
    version: int = Field(..., ge=1)
    quality_score: float = Field(..., ge=0.0, le=1.0)
    excluded_rows: list[int] = Field(default_factory=list)
    issues: list[ValidationIssueResponse] = Field(default_factory=list)
    results: list[ScoreResultResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, run: ScoreRun) -> "ScoreRunResponse":
        snapshot = run.snapshot
        return cls(
            dataset_id=snapshot.dataset_id,
            config_id=snapshot.config_id,
            version=snapshot.version,
            quality_score=run.report.quality_score,
            excluded_rows=list(run.report.excluded_rows),
            issues=[ValidationIssueResponse.from_domain(issue) for issue in run.report.issues],
            results=[
                ScoreResultResponse.from_domain(result, explanation.factors, explanation.partial)
                for result, explanation in zip(snapshot.results, snapshot.explanations)
            ],
        )


class ExplanationResponse(BaseModel):
    dataset_id: str
    region_id: str
    config_id: str
    score: float | None = None
    top_contributors: list[ContributingFactorResponse]
    rescaled_metrics: dict[str, float | None]
    partial: bool

    @classmethod
    def from_domain(cls, explanation: RegionExplanation) -> "ExplanationResponse":
        return cls(
            dataset_id=explanation.dataset_id,
            region_id=explanation.region_id,
            config_id=explanation.config_id,
            score=explanation.score,
            top_contributors=[
                ContributingFactorResponse.from_domain(f) for f in explanation.top_contributors
            ],
            rescaled_metrics=dict(explanation.rescaled_metrics),
            partial=explanation.partial,
        )


class ProvenanceEntryResponse(BaseModel):
    sequence: int
    dataset_id: str
    stage: str
    status: str
    recorded_at: datetime
    duration_ms: float
    input_refs: list[str]
    output_ref: str | None = None
    parameters: dict[str, Any]
    errors: list[str]
    supersedes: int | None = None

    @classmethod
    def from_domain(cls, entry: ProvenanceEntry) -> "ProvenanceEntryResponse":
        return cls(
            sequence=entry.sequence,
            dataset_id=entry.dataset_id,
            stage=entry.stage,
            status=entry.status,
            recorded_at=entry.recorded_at,
            duration_ms=entry.duration_ms,
            input_refs=list(entry.input_refs),
            output_ref=entry.output_ref,
            parameters=dict(entry.parameters),
            errors=list(entry.errors),
            supersedes=entry.supersedes,
        )


class ProvenanceListResponse(BaseModel):
    dataset_id: str
    entries: list[ProvenanceEntryResponse] = Field(default_factory=list)
