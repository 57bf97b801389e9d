"""
readiness/weights.py

Validation and canonicalization of weight vectors, and the stores that
keep registered WeightConfigs.

Invalid configurations are rejected here, before any recomputation begins,
so previously committed scores stay authoritative.
"""

from __future__ import annotations

import math
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Mapping

from app.domain.readiness import METRIC_NAMES, WeightConfig
from app.mappers.field_mapper import canonical_metric_name
from readiness.errors import ConfigurationError


def canonical_weights(weights: Mapping[str, Any]) -> dict[str, float]:
    """
    Return a full metric -> weight mapping with canonical metric names.

    Metrics that are not named get weight 0.0.

    Raises:
        ConfigurationError: unknown or repeated metric names, non-numeric,
            negative or non-finite weights, or no non-zero weight.
    """

    errors: list[str] = []
    resolved: dict[str, float] = {name: 0.0 for name in METRIC_NAMES}
    seen: dict[str, str] = {}

    for raw_name, raw_weight in weights.items():
        name = canonical_metric_name(str(raw_name))
        if name is None:
            errors.append(f"Unknown metric '{raw_name}'.")
            continue
        if name in seen:
            errors.append(f"Metric '{raw_name}' repeats '{seen[name]}'.")
            continue
        seen[name] = str(raw_name)

        if isinstance(raw_weight, bool):
            errors.append(f"Weight for '{raw_name}' must be a number.")
            continue
        try:
            weight = float(raw_weight)
        except (TypeError, ValueError):
            errors.append(f"Weight for '{raw_name}' must be a number.")
            continue
        if not math.isfinite(weight):
            errors.append(f"Weight for '{raw_name}' must be finite.")
            continue
        if weight < 0:
            errors.append(f"Weight for '{raw_name}' must not be negative.")
            continue
        resolved[name] = weight

    if not errors and not any(weight > 0 for weight in resolved.values()):
        errors.append("At least one weight must be non-zero.")

    if errors:
        raise ConfigurationError("Weight configuration is invalid.", errors=errors)
    return resolved


def build_weight_config(
    weights: Mapping[str, Any],
    *,
    config_id: str | None = None,
) -> WeightConfig:
    """
    Validate ``weights`` and wrap them in an immutable WeightConfig.
    """

    config_id = (config_id or "").strip() or uuid.uuid4().hex
    return WeightConfig(config_id=config_id, weights=canonical_weights(weights))


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class WeightConfigStore(ABC):
    """
    Persisted, retrievable WeightConfigs. A config id is bound to one weight
    vector forever; changing weights means saving under a new id.
    """

    @abstractmethod
    def save(self, config: WeightConfig) -> WeightConfig:
        raise NotImplementedError("Subclasses must implement save()")

    @abstractmethod
    def get(self, config_id: str) -> WeightConfig | None:
        raise NotImplementedError("Subclasses must implement get()")


def ensure_same_weights(existing: WeightConfig, candidate: WeightConfig) -> None:
    if existing.as_dict() != candidate.as_dict():
        raise ConfigurationError(
            f"Weight config '{candidate.config_id}' already exists with different weights; "
            "save the change under a new config id.",
            errors=[f"config_id: {candidate.config_id}"],
        )


class InMemoryWeightConfigStore(WeightConfigStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._configs: dict[str, WeightConfig] = {}

    def save(self, config: WeightConfig) -> WeightConfig:
        with self._lock:
            existing = self._configs.get(config.config_id)
            if existing is not None:
                ensure_same_weights(existing, config)
                return existing
            self._configs[config.config_id] = config
            return config

    def get(self, config_id: str) -> WeightConfig | None:
        with self._lock:
            return self._configs.get(config_id)
