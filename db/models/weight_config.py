"""
db/models/weight_config.py

Persisted weight vectors. A config id is written once; weight changes are
stored under a new id.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType


class WeightConfigRecord(Base):
    __tablename__ = "weight_configs"

    config_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    weights: Mapped[dict[str, float]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Canonical metric name -> non-negative weight",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
