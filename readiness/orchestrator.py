"""
readiness/orchestrator.py

Runs the readiness stages for one Dataset and records each invocation in the
provenance ledger. Contains no scoring math of its own.

Stage order::

    normalize (cell repair) -> derive -> normalize (min-max) -> score -> explain

The first three stages depend only on the Dataset and are prepared once per
validation. Score and explain re-run on every WeightConfig and are committed
as one snapshot: either every region gets results tagged with the new config
id, or the previous snapshot stays authoritative.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from app.domain.readiness import (
    METRIC_NAMES,
    Dataset,
    DerivedRow,
    EntryStatus,
    Explanation,
    MetricExtrema,
    NormalizationReport,
    ProvenanceEntry,
    RescaledRow,
    ScoreResult,
    ScoreRun,
    ScoreSnapshot,
    Stage,
    WeightConfig,
)
from app.logging_utils import log_event
from provenance.ledger import ProvenanceLedger
from readiness.derived import DerivedMetricsCalculator
from readiness.errors import (
    ConcurrentUpdateError,
    ConfigurationError,
    InsufficientDataError,
    ProvenanceWriteError,
    ScoringError,
)
from readiness.explain import TOP_FACTOR_COUNT, ExplainabilityRanker
from readiness.normalizer import CellNormalizer
from readiness.rescaler import MinMaxRescaler
from readiness.scoring import WeightedScorer
from readiness.store import ScoreSnapshotStore
from readiness.weights import canonical_weights

logger = logging.getLogger(__name__)

MAX_LOGGED_ISSUES = 200


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000.0, 3)


def _dataset_ref(dataset_id: str) -> str:
    return f"dataset:{dataset_id}"


def _partial_explanation_error(result: ScoreResult) -> str:
    defined = sum(1 for item in result.contributions if item.rescaled_value is not None)
    if defined < TOP_FACTOR_COUNT:
        return (
            f"InsufficientFactorsError: region '{result.region_id}' has "
            f"{defined} defined metrics"
        )
    # Enough metrics, but none of them carries weight under this config.
    return f"region '{result.region_id}' has no weighted metrics to rank"


@dataclass(frozen=True)
class PreparedDataset:
    """
    Weight-independent intermediate results for one Dataset.
    """

    dataset_id: str
    report: NormalizationReport
    derived: tuple[DerivedRow, ...]
    extrema: tuple[MetricExtrema, ...]
    rescaled: tuple[RescaledRow, ...]


class ReadinessPipeline:
    """
    Coordinates normalizer, calculator, rescaler, scorer and ranker, the
    snapshot store and the provenance ledger.
    """

    def __init__(
        self,
        *,
        ledger: ProvenanceLedger,
        store: ScoreSnapshotStore | None = None,
        normalizer: CellNormalizer | None = None,
        calculator: DerivedMetricsCalculator | None = None,
        rescaler: MinMaxRescaler | None = None,
        scorer: WeightedScorer | None = None,
        ranker: ExplainabilityRanker | None = None,
    ) -> None:
        self._ledger = ledger
        self._store = store or ScoreSnapshotStore()
        self._normalizer = normalizer or CellNormalizer()
        self._calculator = calculator or DerivedMetricsCalculator()
        self._rescaler = rescaler or MinMaxRescaler()
        self._scorer = scorer or WeightedScorer()
        self._ranker = ranker or ExplainabilityRanker()

    @property
    def store(self) -> ScoreSnapshotStore:
        return self._store

    # ------------------------------------------------------------------
    # Weight-independent stages
    # ------------------------------------------------------------------

    def prepare(self, dataset: Dataset) -> PreparedDataset:
        """
        Normalize cells, derive ratios and rescale them across the dataset.

        Raises:
            InsufficientDataError: no row passed cell normalization.
        """

        report = self._run_cell_normalization(dataset)
        derived = self._run_derivation(dataset.dataset_id, report)
        extrema, rescaled = self._run_rescaling(dataset.dataset_id, derived)
        return PreparedDataset(
            dataset_id=dataset.dataset_id,
            report=report,
            derived=derived,
            extrema=extrema,
            rescaled=rescaled,
        )

    def _run_cell_normalization(self, dataset: Dataset) -> NormalizationReport:
        started = time.perf_counter()
        report = self._normalizer.normalize(dataset)

        issue_lines = [
            f"row {issue.row_number} {issue.column} [{issue.severity}]: {issue.message}"
            for issue in report.issues
        ]
        parameters: dict[str, Any] = {
            "method": "cell_repair",
            "missing_value_policy": self._normalizer.missing_policy.name,
            "row_count": dataset.row_count,
            "accepted_rows": len(report.rows),
            "excluded_rows": list(report.excluded_rows),
            "quality_score": report.quality_score,
            "warning_count": report.warning_count,
            "error_count": report.error_count,
        }

        if not report.rows:
            self._ledger.record(
                ProvenanceEntry(
                    dataset_id=dataset.dataset_id,
                    stage=Stage.NORMALIZE,
                    status=EntryStatus.FAILED,
                    parameters=parameters,
                    input_refs=(_dataset_ref(dataset.dataset_id),),
                    errors=tuple(["No rows passed normalization.", *issue_lines]),
                    duration_ms=_elapsed_ms(started),
                )
            )
            log_event(
                logger,
                logging.WARNING,
                "normalization_rejected_all_rows",
                dataset_id=dataset.dataset_id,
                row_count=dataset.row_count,
            )
            raise InsufficientDataError(
                "No rows passed normalization.",
                errors=issue_lines[:MAX_LOGGED_ISSUES],
                dataset_id=dataset.dataset_id,
            )

        status = EntryStatus.PARTIAL if report.excluded_rows else EntryStatus.SUCCESS
        self._ledger.record(
            ProvenanceEntry(
                dataset_id=dataset.dataset_id,
                stage=Stage.NORMALIZE,
                status=status,
                parameters=parameters,
                input_refs=(_dataset_ref(dataset.dataset_id),),
                output_ref=f"normalized:{dataset.dataset_id}",
                errors=tuple(issue_lines),
                duration_ms=_elapsed_ms(started),
            )
        )
        if report.excluded_rows:
            log_event(
                logger,
                logging.WARNING,
                "rows_excluded",
                dataset_id=dataset.dataset_id,
                excluded_rows=list(report.excluded_rows),
                quality_score=report.quality_score,
            )
        return report

    def _run_derivation(
        self,
        dataset_id: str,
        report: NormalizationReport,
    ) -> tuple[DerivedRow, ...]:
        started = time.perf_counter()
        derived = self._calculator.derive_all(report.rows)

        undefined = {
            row.region_id: [name for name in METRIC_NAMES if row.metrics[name] is None]
            for row in derived
            if any(row.metrics[name] is None for name in METRIC_NAMES)
        }
        self._ledger.record(
            ProvenanceEntry(
                dataset_id=dataset_id,
                stage=Stage.DERIVE,
                status=EntryStatus.SUCCESS,
                parameters={
                    "metrics": list(METRIC_NAMES),
                    "row_count": len(derived),
                    "undefined_metrics": undefined,
                },
                input_refs=(f"normalized:{dataset_id}",),
                output_ref=f"derived:{dataset_id}",
                duration_ms=_elapsed_ms(started),
            )
        )
        return derived

    def _run_rescaling(
        self,
        dataset_id: str,
        derived: tuple[DerivedRow, ...],
    ) -> tuple[tuple[MetricExtrema, ...], tuple[RescaledRow, ...]]:
        started = time.perf_counter()
        extrema = self._rescaler.extrema(derived)
        rescaled = self._rescaler.rescale(derived)
        self._ledger.record(
            ProvenanceEntry(
                dataset_id=dataset_id,
                stage=Stage.NORMALIZE,
                status=EntryStatus.SUCCESS,
                parameters={
                    "method": "min_max",
                    "extrema": {
                        item.metric: {
                            "min": item.minimum,
                            "max": item.maximum,
                            "defined_count": item.defined_count,
                        }
                        for item in extrema
                    },
                },
                input_refs=(f"derived:{dataset_id}",),
                output_ref=f"rescaled:{dataset_id}",
                duration_ms=_elapsed_ms(started),
            )
        )
        return extrema, rescaled

    # ------------------------------------------------------------------
    # Weight-dependent stages
    # ------------------------------------------------------------------

    def score(self, prepared: PreparedDataset, config: WeightConfig) -> ScoreRun:
        """
        Score and explain every row, then commit the result set atomically.

        Raises:
            ConfigurationError: the WeightConfig is invalid; nothing recomputed.
            ScoringError: a row failed; the previous snapshot stays current.
            ConcurrentUpdateError: a newer snapshot was committed meanwhile.
        """

        dataset_id = prepared.dataset_id
        started = time.perf_counter()
        expected_version = self._store.current_version(dataset_id)
        previous_entry = self._ledger.latest(dataset_id, Stage.SCORE)
        supersedes = previous_entry.sequence if previous_entry is not None else None
        input_refs = (f"rescaled:{dataset_id}", f"weights:{config.config_id}")
        base_parameters: dict[str, Any] = {
            "config_id": config.config_id,
            "weights": config.as_dict(),
            "expected_version": expected_version,
        }

        try:
            config = WeightConfig(config_id=config.config_id, weights=canonical_weights(config.weights))
        except ConfigurationError as exc:
            self._record_score_failure(dataset_id, base_parameters, input_refs, exc, started)
            raise
        base_parameters["weights"] = config.as_dict()

        try:
            results = tuple(self._scorer.score(row, config) for row in prepared.rescaled)
        except Exception as exc:
            error = ScoringError(
                f"Scoring failed for dataset {dataset_id}; previous results kept.",
                errors=[repr(exc)],
                dataset_id=dataset_id,
            )
            self._record_score_failure(dataset_id, base_parameters, input_refs, error, started)
            raise error from exc

        score_duration = _elapsed_ms(started)
        explain_started = time.perf_counter()
        try:
            explanations = tuple(self._ranker.rank(result) for result in results)
        except Exception as exc:
            error = ScoringError(
                f"Ranking failed for dataset {dataset_id}; previous results kept.",
                errors=[repr(exc)],
                dataset_id=dataset_id,
            )
            self._record_score_failure(dataset_id, base_parameters, input_refs, error, started)
            raise error from exc
        explain_duration = _elapsed_ms(explain_started)

        snapshot = ScoreSnapshot(
            dataset_id=dataset_id,
            config_id=config.config_id,
            version=expected_version + 1,
            results=results,
            explanations=explanations,
            rescaled=prepared.rescaled,
        )

        recorded: list[ProvenanceEntry] = []

        def _record_run() -> None:
            recorded.append(
                self._record_score_success(
                    snapshot, base_parameters, input_refs, supersedes, score_duration
                )
            )
            self._record_explanations(snapshot, explain_duration)

        try:
            self._store.commit(snapshot, expected_version=expected_version, before_swap=_record_run)
        except ConcurrentUpdateError as exc:
            self._record_score_failure(dataset_id, base_parameters, input_refs, exc, started)
            raise
        except ProvenanceWriteError as exc:
            if recorded:
                self._void_score_entry(recorded[0], base_parameters, input_refs, exc, started)
            raise

        log_event(
            logger,
            logging.INFO,
            "scores_committed",
            dataset_id=dataset_id,
            config_id=config.config_id,
            version=snapshot.version,
            regions=len(results),
        )
        return ScoreRun(snapshot=snapshot, report=prepared.report)

    def _record_score_success(
        self,
        snapshot: ScoreSnapshot,
        base_parameters: dict[str, Any],
        input_refs: tuple[str, ...],
        supersedes: int | None,
        duration_ms: float,
    ) -> ProvenanceEntry:
        insufficient = [
            result.region_id for result in snapshot.results if result.insufficient_metrics
        ]
        return self._ledger.record(
            ProvenanceEntry(
                dataset_id=snapshot.dataset_id,
                stage=Stage.SCORE,
                status=EntryStatus.PARTIAL if insufficient else EntryStatus.SUCCESS,
                parameters={
                    **base_parameters,
                    "version": snapshot.version,
                    "scores": {result.region_id: result.score for result in snapshot.results},
                    "insufficient_metrics": insufficient,
                },
                input_refs=input_refs,
                output_ref=f"scores:{snapshot.dataset_id}:v{snapshot.version}",
                errors=tuple(f"{region}: insufficient metrics" for region in insufficient),
                duration_ms=duration_ms,
                supersedes=supersedes,
            )
        )

    def _record_explanations(self, snapshot: ScoreSnapshot, duration_ms: float) -> None:
        partial = [
            (result, explanation)
            for result, explanation in zip(snapshot.results, snapshot.explanations)
            if explanation.partial
        ]
        self._ledger.record(
            ProvenanceEntry(
                dataset_id=snapshot.dataset_id,
                stage=Stage.EXPLAIN,
                status=EntryStatus.PARTIAL if partial else EntryStatus.SUCCESS,
                parameters={
                    "config_id": snapshot.config_id,
                    "version": snapshot.version,
                    "top_factors": {
                        item.region_id: [factor.metric for factor in item.factors]
                        for item in snapshot.explanations
                    },
                },
                input_refs=(f"scores:{snapshot.dataset_id}:v{snapshot.version}",),
                output_ref=f"explanations:{snapshot.dataset_id}:v{snapshot.version}",
                errors=tuple(_partial_explanation_error(result) for result, _ in partial),
                duration_ms=duration_ms,
            )
        )

    def _void_score_entry(
        self,
        entry: ProvenanceEntry,
        base_parameters: dict[str, Any],
        input_refs: tuple[str, ...],
        error: ProvenanceWriteError,
        started: float,
    ) -> None:
        version = entry.parameters.get("version")
        self._record_score_failure(
            entry.dataset_id,
            {**base_parameters, "version": version},
            input_refs,
            error,
            started,
            supersedes=entry.sequence,
            reason=f"Score entry {entry.sequence} is void; version {version} was never committed.",
        )

    def _record_score_failure(
        self,
        dataset_id: str,
        base_parameters: dict[str, Any],
        input_refs: tuple[str, ...],
        error: Exception,
        started: float,
        *,
        supersedes: int | None = None,
        reason: str | None = None,
    ) -> None:
        errors = [reason] if reason else []
        errors.append(str(error))
        errors.extend(getattr(error, "errors", ()))
        self._ledger.record(
            ProvenanceEntry(
                dataset_id=dataset_id,
                stage=Stage.SCORE,
                status=EntryStatus.FAILED,
                parameters=base_parameters,
                input_refs=input_refs,
                errors=tuple(errors),
                duration_ms=_elapsed_ms(started),
                supersedes=supersedes,
            )
        )
        log_event(
            logger,
            logging.WARNING,
            "score_run_failed",
            dataset_id=dataset_id,
            config_id=base_parameters.get("config_id"),
            error=str(error),
        )
