"""
db/repositories/weight_config_repository.py

SQLAlchemy-backed WeightConfig store.
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from app.domain.readiness import WeightConfig
from db.models.weight_config import WeightConfigRecord
from readiness.weights import WeightConfigStore, ensure_same_weights


class SQLAlchemyWeightConfigStore(WeightConfigStore):
    """
    Rows in ``weight_configs`` are inserted once and never updated.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def save(self, config: WeightConfig) -> WeightConfig:
        with self._session_factory() as session, session.begin():
            record = session.get(WeightConfigRecord, config.config_id)
            if record is not None:
                existing = WeightConfig(config_id=record.config_id, weights=dict(record.weights))
                ensure_same_weights(existing, config)
                return existing
            session.add(WeightConfigRecord(config_id=config.config_id, weights=config.as_dict()))
        return config

    def get(self, config_id: str) -> WeightConfig | None:
        with self._session_factory() as session:
            record = session.get(WeightConfigRecord, config_id)
            if record is None:
                return None
            return WeightConfig(config_id=record.config_id, weights=dict(record.weights))
