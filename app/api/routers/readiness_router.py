"""
app/api/routers/readiness_router.py

Readiness scoring HTTP endpoints.

A thin JSON transport over ReadinessService: every handler delegates to one
service operation and maps typed errors to HTTP status codes.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.domain.readiness import RawTable, Stage
from app.schemas.readiness import (
    DatasetLoadRequest,
    DatasetResponse,
    ExplanationResponse,
    ProvenanceEntryResponse,
    ProvenanceListResponse,
    ScoreRequest,
    ScoreRunResponse,
    WeightConfigRequest,
    WeightConfigResponse,
)
from app.services.readiness_service import ReadinessService, get_readiness_service
from readiness.errors import (
    ConcurrentUpdateError,
    ConfigurationError,
    ConsistencyError,
    InsufficientDataError,
    NotFoundError,
    ProvenanceWriteError,
    ReadinessError,
    StructuralError,
)
from readiness.weights import build_weight_config

router = APIRouter(tags=["readiness"])


def _http_error(exc: ReadinessError) -> HTTPException:
    if isinstance(exc, StructuralError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConcurrentUpdateError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, (ConfigurationError, InsufficientDataError)):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, (ProvenanceWriteError, ConsistencyError)):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=exc.to_dict())


@router.post("/datasets", response_model=DatasetResponse, status_code=status.HTTP_201_CREATED)
def load_dataset(
    payload: DatasetLoadRequest,
    service: ReadinessService = Depends(get_readiness_service),
) -> DatasetResponse:
    """
    Validate one parsed table and register it as a Dataset.
    """

    table = RawTable(
        headers=tuple(payload.headers),
        rows=tuple(tuple(row) for row in payload.rows),
    )
    try:
        dataset = service.validate_and_load(table, dataset_id=payload.dataset_id)
    except ReadinessError as exc:
        raise _http_error(exc) from exc

    return DatasetResponse(
        dataset_id=dataset.dataset_id,
        row_count=dataset.row_count,
        created_at=dataset.created_at,
    )


@router.post(
    "/weight-configs",
    response_model=WeightConfigResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_weight_config(
    payload: WeightConfigRequest,
    service: ReadinessService = Depends(get_readiness_service),
) -> WeightConfigResponse:
    try:
        config = service.register_weight_config(
            build_weight_config(payload.weights, config_id=payload.config_id)
        )
    except ReadinessError as exc:
        raise _http_error(exc) from exc
    return WeightConfigResponse(config_id=config.config_id, weights=config.as_dict())


@router.post("/datasets/{dataset_id}/scores", response_model=ScoreRunResponse)
def score_dataset(
    dataset_id: str,
    payload: ScoreRequest,
    service: ReadinessService = Depends(get_readiness_service),
) -> ScoreRunResponse:
    """
    Score a loaded Dataset with a registered WeightConfig.
    """

    try:
        run = service.score_dataset_by_id(dataset_id, payload.config_id)
    except ReadinessError as exc:
        raise _http_error(exc) from exc
    return ScoreRunResponse.from_domain(run)


@router.get(
    "/datasets/{dataset_id}/regions/{region_id}/explanation",
    response_model=ExplanationResponse,
)
def explain_region(
    dataset_id: str,
    region_id: str,
    service: ReadinessService = Depends(get_readiness_service),
) -> ExplanationResponse:
    try:
        explanation = service.explain(dataset_id, region_id)
    except ReadinessError as exc:
        raise _http_error(exc) from exc
    return ExplanationResponse.from_domain(explanation)


@router.get("/datasets/{dataset_id}/provenance", response_model=ProvenanceListResponse)
def get_provenance(
    dataset_id: str,
    stage: list[str] | None = Query(default=None, description="Filter by stage name"),
    entry_status: list[str] | None = Query(default=None, alias="status"),
    since: datetime | None = Query(default=None),
    until: datetime | None = Query(default=None),
    service: ReadinessService = Depends(get_readiness_service),
) -> ProvenanceListResponse:
    """
    Ledger entries for one dataset in chronological order.
    """

    unknown = sorted(set(stage or ()) - set(Stage.ALL))
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown stage(s): {', '.join(unknown)}. Allowed: {', '.join(Stage.ALL)}.",
        )

    entries = service.get_provenance(
        dataset_id,
        stage=stage,
        status=entry_status,
        since=since,
        until=until,
    )
    return ProvenanceListResponse(
        dataset_id=dataset_id,
        entries=[ProvenanceEntryResponse.from_domain(entry) for entry in entries],
    )
