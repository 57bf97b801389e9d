from __future__ import annotations

import pytest

from app.domain.readiness import METRIC_NAMES
from readiness.errors import ConfigurationError
from readiness.weights import InMemoryWeightConfigStore, build_weight_config, canonical_weights


class TestCanonicalWeights:
    def test_fills_unnamed_metrics_with_zero(self) -> None:
        weights = canonical_weights({"utilizationRate": 2})

        assert tuple(weights) == METRIC_NAMES
        assert weights["utilization_rate"] == 2.0
        assert weights["budget_per_capita"] == 0.0

    @pytest.mark.parametrize(
        "weights, fragment",
        [
            ({"readiness": 1}, "Unknown metric"),
            ({"utilization_rate": 1, "utilizationRate": 2}, "repeats"),
            ({"utilization_rate": -1}, "must not be negative"),
            ({"utilization_rate": float("nan")}, "must be finite"),
            ({"utilization_rate": "heavy"}, "must be a number"),
            ({"utilization_rate": True}, "must be a number"),
            ({"utilization_rate": 0, "equipment_index": 0}, "non-zero"),
            ({}, "non-zero"),
        ],
    )
    def test_rejects_invalid_weights(self, weights, fragment) -> None:
        with pytest.raises(ConfigurationError) as excinfo:
            canonical_weights(weights)

        assert any(fragment in error for error in excinfo.value.errors)


class TestBuildWeightConfig:
    def test_generates_config_id(self) -> None:
        config = build_weight_config({"equipment_index": 1})

        assert len(config.config_id) == 32

    def test_weights_are_read_only(self) -> None:
        config = build_weight_config({"equipment_index": 1}, config_id="c1")

        with pytest.raises(TypeError):
            config.weights["equipment_index"] = 5.0  # type: ignore[index]


class TestInMemoryWeightConfigStore:
    def test_save_and_get(self) -> None:
        store = InMemoryWeightConfigStore()
        config = build_weight_config({"equipment_index": 1}, config_id="c1")

        store.save(config)

        assert store.get("c1") == config
        assert store.get("missing") is None

    def test_same_id_same_weights_is_idempotent(self) -> None:
        store = InMemoryWeightConfigStore()
        first = store.save(build_weight_config({"equipment_index": 1}, config_id="c1"))

        again = store.save(build_weight_config({"equipmentIndex": 1.0}, config_id="c1"))

        assert again is first

    def test_same_id_different_weights_is_rejected(self) -> None:
        store = InMemoryWeightConfigStore()
        store.save(build_weight_config({"equipment_index": 1}, config_id="c1"))

        with pytest.raises(ConfigurationError):
            store.save(build_weight_config({"equipment_index": 2}, config_id="c1"))
