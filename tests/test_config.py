from __future__ import annotations

import logging

import pytest

from app.config import MAX_DATASET_ROWS, get_log_level, get_readiness_settings
from app.services.readiness_service import get_readiness_service


@pytest.fixture(autouse=True)
def _clear_caches():
    get_readiness_settings.cache_clear()
    get_readiness_service.cache_clear()
    yield
    get_readiness_settings.cache_clear()
    get_readiness_service.cache_clear()


class TestReadinessSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "READINESS_MAX_ROWS",
            "READINESS_MISSING_NUMERIC_POLICY",
            "READINESS_LEDGER_BACKEND",
            "READINESS_DEFAULT_WEIGHTS",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = get_readiness_settings()

        assert settings.max_rows == MAX_DATASET_ROWS
        assert settings.missing_numeric_policy == "zero"
        assert settings.ledger_backend == "memory"
        assert settings.default_weights == {}

    def test_max_rows_is_capped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("READINESS_MAX_ROWS", "5000")

        assert get_readiness_settings().max_rows == MAX_DATASET_ROWS

    def test_invalid_choice_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("READINESS_MISSING_NUMERIC_POLICY", "interpolate")

        with pytest.raises(RuntimeError):
            get_readiness_settings()

    def test_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")

        assert get_log_level() == logging.DEBUG


class TestServiceFactory:
    def test_registers_default_weights(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("READINESS_LEDGER_BACKEND", "memory")
        monkeypatch.setenv("READINESS_DEFAULT_WEIGHTS", '{"equipmentIndex": 1}')
        monkeypatch.setenv("READINESS_DEFAULT_WEIGHT_CONFIG_ID", "baseline")

        service = get_readiness_service()

        assert service.get_weight_config("baseline").weights["equipment_index"] == 1.0

    def test_invalid_default_weights_fail_fast(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("READINESS_LEDGER_BACKEND", "memory")
        monkeypatch.setenv("READINESS_DEFAULT_WEIGHTS", '{"readiness": 1}')

        with pytest.raises(RuntimeError):
            get_readiness_service()
