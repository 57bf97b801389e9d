"""
app/services/readiness_service.py

Service layer exposing the readiness core to transport collaborators.

Operations
----------
validate_and_load(table)             -> Dataset
score_dataset(dataset, config)       -> ScoreRun
explain(dataset_id, region_id)       -> RegionExplanation
get_provenance(dataset_id, ...)      -> list[ProvenanceEntry]

Every call records its stage entries in the provenance ledger, including
rejected and partial outcomes. The service never retries; errors propagate
as the typed exceptions in ``readiness.errors``.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from datetime import datetime
from functools import lru_cache
from typing import Iterable

from app.config import get_readiness_settings
from app.domain.readiness import (
    Dataset,
    EntryStatus,
    ProvenanceEntry,
    RegionExplanation,
    ScoreRun,
    Stage,
    WeightConfig,
)
from app.logging_utils import log_event
from app.validators.schema_validator import SchemaValidator, TableInput, coerce_table
from provenance.ledger import InMemoryProvenanceSink, ProvenanceLedger, ProvenanceSink
from readiness.errors import NotFoundError, ReadinessError, StructuralError
from readiness.normalizer import CellNormalizer, get_missing_value_policy
from readiness.orchestrator import PreparedDataset, ReadinessPipeline
from readiness.weights import InMemoryWeightConfigStore, WeightConfigStore, build_weight_config

logger = logging.getLogger(__name__)


class ReadinessService:
    """
    Holds validated Datasets and their prepared metrics, and delegates
    stage execution to ReadinessPipeline.
    """

    def __init__(
        self,
        *,
        ledger: ProvenanceLedger | None = None,
        pipeline: ReadinessPipeline | None = None,
        validator: SchemaValidator | None = None,
        weight_store: WeightConfigStore | None = None,
    ) -> None:
        self._ledger = ledger or ProvenanceLedger()
        self._pipeline = pipeline or ReadinessPipeline(ledger=self._ledger)
        self._validator = validator or SchemaValidator()
        self._weight_store = weight_store or InMemoryWeightConfigStore()
        self._lock = threading.RLock()
        self._datasets: dict[str, Dataset] = {}
        self._prepared: dict[str, PreparedDataset] = {}

    @property
    def ledger(self) -> ProvenanceLedger:
        return self._ledger

    # ------------------------------------------------------------------
    # validateAndLoad
    # ------------------------------------------------------------------

    def validate_and_load(
        self,
        table: TableInput,
        *,
        dataset_id: str | None = None,
    ) -> Dataset:
        """
        Structurally validate ``table`` and register the resulting Dataset.

        Passing an existing ``dataset_id`` re-validates that dataset: its
        prepared metrics are dropped and recomputed on the next scoring run.
        Committed scores stay authoritative until then.

        Raises:
            SchemaError, SizeError, DuplicateKeyError: the table is rejected
                and no Dataset is registered. The error's ``dataset_id``
                names the ledger entry describing the rejection.
        """

        started = time.perf_counter()
        dataset_id = dataset_id or uuid.uuid4().hex
        parameters: dict[str, object] = {}
        try:
            raw = coerce_table(table)
            parameters = {
                "headers": list(raw.headers),
                "column_count": len(raw.headers),
                "row_count": len(raw.rows),
            }
            dataset = self._validator.validate(raw, dataset_id=dataset_id)
        except StructuralError as exc:
            rejected_id = exc.dataset_id or dataset_id
            exc.dataset_id = rejected_id
            self._ledger.record(
                ProvenanceEntry(
                    dataset_id=rejected_id,
                    stage=Stage.VALIDATE,
                    status=EntryStatus.FAILED,
                    parameters={**parameters, "error_code": exc.code},
                    errors=(exc.message, *exc.errors),
                    duration_ms=round((time.perf_counter() - started) * 1000.0, 3),
                )
            )
            log_event(
                logger,
                logging.WARNING,
                "dataset_rejected",
                dataset_id=rejected_id,
                code=exc.code,
                message=exc.message,
            )
            raise

        with self._lock:
            previous = self._ledger.latest(dataset.dataset_id, Stage.VALIDATE)
            self._ledger.record(
                ProvenanceEntry(
                    dataset_id=dataset.dataset_id,
                    stage=Stage.VALIDATE,
                    status=EntryStatus.SUCCESS,
                    parameters=parameters,
                    output_ref=f"dataset:{dataset.dataset_id}",
                    duration_ms=round((time.perf_counter() - started) * 1000.0, 3),
                    supersedes=previous.sequence if previous is not None else None,
                )
            )
            self._datasets[dataset.dataset_id] = dataset
            self._prepared.pop(dataset.dataset_id, None)

        log_event(
            logger,
            logging.INFO,
            "dataset_loaded",
            dataset_id=dataset.dataset_id,
            row_count=dataset.row_count,
        )
        return dataset

    def get_dataset(self, dataset_id: str) -> Dataset:
        with self._lock:
            dataset = self._datasets.get(dataset_id)
        if dataset is None:
            raise NotFoundError(f"Dataset '{dataset_id}' was not found.", dataset_id=dataset_id)
        return dataset

    # ------------------------------------------------------------------
    # Weight configs
    # ------------------------------------------------------------------

    def register_weight_config(self, config: WeightConfig) -> WeightConfig:
        """
        Persist ``config``; re-registering the same id with other weights fails.
        """

        validated = build_weight_config(config.weights, config_id=config.config_id)
        return self._weight_store.save(validated)

    def get_weight_config(self, config_id: str) -> WeightConfig:
        config = self._weight_store.get(config_id)
        if config is None:
            raise NotFoundError(f"Weight config '{config_id}' was not found.")
        return config

    # ------------------------------------------------------------------
    # scoreDataset
    # ------------------------------------------------------------------

    def score_dataset(self, dataset: Dataset, config: WeightConfig) -> ScoreRun:
        """
        Score every accepted row of ``dataset`` under ``config``.

        Normalization, derivation and rescaling run once per validated
        Dataset; a new WeightConfig only re-runs scoring and ranking.

        Raises:
            InsufficientDataError: no row survived normalization.
            ConfigurationError: invalid weights; prior scores untouched.
            ScoringError, ConcurrentUpdateError: nothing committed.
        """

        prepared = self._prepared_for(dataset)
        return self._pipeline.score(prepared, config)

    def score_dataset_by_id(self, dataset_id: str, config_id: str) -> ScoreRun:
        return self.score_dataset(self.get_dataset(dataset_id), self.get_weight_config(config_id))

    def _prepared_for(self, dataset: Dataset) -> PreparedDataset:
        with self._lock:
            known = self._datasets.get(dataset.dataset_id)
            if known is not dataset:
                self._datasets[dataset.dataset_id] = dataset
                self._prepared.pop(dataset.dataset_id, None)
            prepared = self._prepared.get(dataset.dataset_id)
            if prepared is None:
                prepared = self._pipeline.prepare(dataset)
                self._prepared[dataset.dataset_id] = prepared
            return prepared

    # ------------------------------------------------------------------
    # explain
    # ------------------------------------------------------------------

    def explain(self, dataset_id: str, region_id: str) -> RegionExplanation:
        """
        Return the committed score, top contributors and rescaled metrics of
        one region.

        Raises:
            NotFoundError: unknown dataset, no committed scores yet, or the
                region is absent from the committed result set.
        """

        snapshot = self._pipeline.store.current(dataset_id)
        if snapshot is None:
            with self._lock:
                known = dataset_id in self._datasets
            message = (
                f"Dataset '{dataset_id}' has no committed scores."
                if known
                else f"Dataset '{dataset_id}' was not found."
            )
            raise NotFoundError(message, dataset_id=dataset_id)

        key = region_id.strip()
        result = snapshot.result_for(key)
        explanation = snapshot.explanation_for(key)
        rescaled = snapshot.rescaled_for(key)
        if result is None or explanation is None or rescaled is None:
            raise NotFoundError(
                f"Region '{region_id}' has no score in dataset '{dataset_id}'.",
                dataset_id=dataset_id,
            )

        return RegionExplanation(
            dataset_id=dataset_id,
            region_id=result.region_id,
            config_id=snapshot.config_id,
            score=result.score,
            top_contributors=explanation.factors,
            rescaled_metrics=dict(rescaled.metrics),
            partial=explanation.partial,
        )

    # ------------------------------------------------------------------
    # getProvenance
    # ------------------------------------------------------------------

    def get_provenance(
        self,
        dataset_id: str,
        *,
        stage: str | Iterable[str] | None = None,
        status: str | Iterable[str] | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[ProvenanceEntry]:
        return self._ledger.query(dataset_id, stage=stage, status=status, since=since, until=until)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def _build_database_backends() -> tuple[ProvenanceSink, WeightConfigStore]:
    from db.repositories.provenance_repository import SQLAlchemyProvenanceSink
    from db.repositories.weight_config_repository import SQLAlchemyWeightConfigStore
    from db.session import SessionLocal

    return SQLAlchemyProvenanceSink(SessionLocal), SQLAlchemyWeightConfigStore(SessionLocal)


@lru_cache(maxsize=1)
def get_readiness_service() -> ReadinessService:
    """
    Build and cache the readiness service with env-driven settings.
    """

    settings = get_readiness_settings()
    if settings.ledger_backend == "database":
        sink, weight_store = _build_database_backends()
    else:
        sink, weight_store = InMemoryProvenanceSink(), InMemoryWeightConfigStore()

    ledger = ProvenanceLedger(sink)
    pipeline = ReadinessPipeline(
        ledger=ledger,
        normalizer=CellNormalizer(
            missing_policy=get_missing_value_policy(settings.missing_numeric_policy),
        ),
    )
    service = ReadinessService(
        ledger=ledger,
        pipeline=pipeline,
        validator=SchemaValidator(max_rows=settings.max_rows),
        weight_store=weight_store,
    )

    if settings.default_weights:
        try:
            service.register_weight_config(
                build_weight_config(
                    settings.default_weights,
                    config_id=settings.default_weight_config_id,
                )
            )
        except ReadinessError as exc:
            raise RuntimeError(f"READINESS_DEFAULT_WEIGHTS is invalid: {exc.message}") from exc
    return service
