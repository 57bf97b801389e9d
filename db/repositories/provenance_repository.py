"""
db/repositories/provenance_repository.py

SQLAlchemy-backed sink for the provenance ledger.

Each append runs in its own short transaction so a recorded entry is
durable before the ledger reports success. Sequence numbers come from the
table's generated primary key, which every writer process shares.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime, timezone
from types import MappingProxyType

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from app.domain.readiness import ProvenanceEntry
from db.models.provenance_entry import ProvenanceEntryRecord
from provenance.ledger import ProvenanceSink


def _to_record(entry: ProvenanceEntry) -> ProvenanceEntryRecord:
    return ProvenanceEntryRecord(
        dataset_id=entry.dataset_id,
        stage=entry.stage,
        status=entry.status,
        recorded_at=entry.recorded_at,
        duration_ms=entry.duration_ms,
        input_refs=list(entry.input_refs),
        output_ref=entry.output_ref,
        parameters=dict(entry.parameters),
        errors=list(entry.errors),
        supersedes=entry.supersedes,
    )


def _to_entry(record: ProvenanceEntryRecord) -> ProvenanceEntry:
    recorded_at = record.recorded_at
    if recorded_at.tzinfo is None:
        recorded_at = recorded_at.replace(tzinfo=timezone.utc)
    return ProvenanceEntry(
        dataset_id=record.dataset_id,
        stage=record.stage,
        status=record.status,
        parameters=MappingProxyType(dict(record.parameters or {})),
        input_refs=tuple(record.input_refs or ()),
        output_ref=record.output_ref,
        errors=tuple(record.errors or ()),
        duration_ms=record.duration_ms,
        supersedes=record.supersedes,
        sequence=record.sequence,
        recorded_at=recorded_at,
    )


class SQLAlchemyProvenanceSink(ProvenanceSink):
    """
    Stores ledger entries in ``provenance_entries``. Insert and select only.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def append(self, entry: ProvenanceEntry) -> ProvenanceEntry:
        record = _to_record(entry)
        with self._session_factory() as session, session.begin():
            session.add(record)
            session.flush()
            sequence = record.sequence
        return replace(entry, sequence=sequence)

    def query(
        self,
        dataset_id: str,
        *,
        stages: Sequence[str] | None = None,
        statuses: Sequence[str] | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[ProvenanceEntry]:
        stmt: Select[tuple[ProvenanceEntryRecord]] = select(ProvenanceEntryRecord).where(
            ProvenanceEntryRecord.dataset_id == dataset_id
        )
        if stages:
            stmt = stmt.where(ProvenanceEntryRecord.stage.in_(list(stages)))
        if statuses:
            stmt = stmt.where(ProvenanceEntryRecord.status.in_(list(statuses)))
        if since is not None:
            stmt = stmt.where(ProvenanceEntryRecord.recorded_at >= since)
        if until is not None:
            stmt = stmt.where(ProvenanceEntryRecord.recorded_at <= until)
        stmt = stmt.order_by(ProvenanceEntryRecord.sequence.asc())

        with self._session_factory() as session:
            return [_to_entry(record) for record in session.scalars(stmt).all()]

