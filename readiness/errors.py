"""
readiness/errors.py

Typed exceptions raised by the readiness pipeline.

Every error carries a stable ``code`` and serializes through ``to_dict`` so
the transport layer can return structured details without inspecting types.
"""

from __future__ import annotations

from typing import Any, Sequence


class ReadinessError(Exception):
    """Base exception for readiness pipeline failures."""

    code: str = "readiness_error"

    def __init__(
        self,
        message: str,
        *,
        errors: Sequence[str] | None = None,
        dataset_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors or ())
        self.dataset_id = dataset_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "dataset_id": self.dataset_id,
            "errors": list(self.errors),
        }


# ---------------------------------------------------------------------------
# Structural: the whole table is rejected
# ---------------------------------------------------------------------------


class StructuralError(ReadinessError):
    """Raised when the incoming table violates a structural invariant."""

    code = "structural_error"


class SchemaError(StructuralError):
    code = "schema_error"


class SizeError(StructuralError):
    code = "size_error"


class DuplicateKeyError(StructuralError):
    code = "duplicate_key"


# ---------------------------------------------------------------------------
# Quality / configuration / consistency
# ---------------------------------------------------------------------------


class InsufficientDataError(ReadinessError):
    """Raised when no row survives normalization."""

    code = "insufficient_data"


class ConfigurationError(ReadinessError):
    """Raised when a WeightConfig is rejected before any recomputation."""

    code = "invalid_weight_config"


class ConsistencyError(ReadinessError):
    """Raised when an atomic score recompute cannot be committed."""

    code = "consistency_error"


class ScoringError(ConsistencyError):
    """Raised when scoring one row fails; the whole run is rolled back."""

    code = "scoring_failed"


class ConcurrentUpdateError(ConsistencyError):
    """Raised when a newer snapshot was committed while this run computed."""

    code = "concurrent_update"


class NotFoundError(ReadinessError):
    code = "not_found"


class InsufficientFactorsError(ReadinessError):
    """
    Raised by strict ranking when fewer than three metrics are defined.

    ``factors`` holds the ones that were available.
    """

    code = "insufficient_factors"

    def __init__(self, message: str, *, region_id: str, factors: Sequence[Any] = ()) -> None:
        super().__init__(message)
        self.region_id = region_id
        self.factors = tuple(factors)


class ProvenanceWriteError(ReadinessError):
    """Raised when a ledger entry cannot be written; the caller's operation fails."""

    code = "provenance_write_failed"
