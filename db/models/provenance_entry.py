"""
db/models/provenance_entry.py

Append-only provenance ledger rows. Rows are inserted once and never updated.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType


class ProvenanceEntryRecord(Base):
    __tablename__ = "provenance_entries"

    sequence: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
        comment="Ledger-wide sequence number generated by the database",
    )
    dataset_id: Mapped[str] = mapped_column(String(64), nullable=False)
    stage: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="validate, normalize, derive, score, explain",
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="success, failed, partial",
    )
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_ms: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    input_refs: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    output_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    parameters: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
        comment="Snapshot of the stage parameters at invocation time",
    )
    errors: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    supersedes: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
        comment="Sequence of the entry this one corrects or replaces",
    )

    __table_args__ = (
        Index("ix_provenance_entries_dataset_id", "dataset_id"),
        Index("ix_provenance_entries_dataset_stage", "dataset_id", "stage"),
        Index("ix_provenance_entries_recorded_at", "recorded_at"),
    )
