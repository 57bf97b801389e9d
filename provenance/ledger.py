"""
provenance/ledger.py

Append-only provenance ledger for readiness pipeline stages.

Entries are ordered by a ledger-wide sequence number that is allocated
atomically. Entries are never mutated or removed; a correction is a new
entry whose ``supersedes`` points at the older sequence number.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Iterable, Sequence

from app.domain.readiness import EntryStatus, ProvenanceEntry, Stage
from app.logging_utils import log_event
from readiness.errors import ProvenanceWriteError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class ProvenanceSink(ABC):
    """
    Storage behind the ledger. Implementations only append and read.

    The sink owns sequence allocation: ``append`` stores the entry under the
    next ledger-wide sequence number and returns the stored entry. Every
    writer sharing the same storage must draw from the same allocator.
    """

    @abstractmethod
    def append(self, entry: ProvenanceEntry) -> ProvenanceEntry:
        raise NotImplementedError("Subclasses must implement append()")

    @abstractmethod
    def query(
        self,
        dataset_id: str,
        *,
        stages: Sequence[str] | None = None,
        statuses: Sequence[str] | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[ProvenanceEntry]:
        """Return matching entries ordered by sequence."""
        raise NotImplementedError("Subclasses must implement query()")


class InMemoryProvenanceSink(ProvenanceSink):
    """
    Process-local sink. Sequence allocation and the append happen under one
    lock, so list order is sequence order.
    """

    def __init__(self) -> None:
        self._entries: list[ProvenanceEntry] = []
        self._lock = threading.Lock()
        self._last_sequence = 0

    def append(self, entry: ProvenanceEntry) -> ProvenanceEntry:
        with self._lock:
            self._last_sequence += 1
            stored = replace(entry, sequence=self._last_sequence)
            self._entries.append(stored)
        return stored

    def query(
        self,
        dataset_id: str,
        *,
        stages: Sequence[str] | None = None,
        statuses: Sequence[str] | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[ProvenanceEntry]:
        matches = [
            entry
            for entry in list(self._entries)
            if entry.dataset_id == dataset_id
            and (not stages or entry.stage in stages)
            and (not statuses or entry.status in statuses)
            and (since is None or entry.recorded_at >= since)
            and (until is None or entry.recorded_at <= until)
        ]
        return sorted(matches, key=lambda entry: entry.sequence)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


def _as_tuple(value: str | Iterable[str] | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class ProvenanceLedger:
    """
    Sequence-numbered, append-only log of ProvenanceEntry records.

    Sequence numbers come from the sink, so ledgers in different threads or
    processes that share one sink never collide. A failed sink write raises
    ProvenanceWriteError so the triggering operation fails with it.
    """

    def __init__(self, sink: ProvenanceSink | None = None) -> None:
        self._sink = sink or InMemoryProvenanceSink()

    def record(self, entry: ProvenanceEntry) -> ProvenanceEntry:
        """
        Stamp the entry, append it and return it with its sequence number.
        """

        if entry.stage not in Stage.ALL:
            raise ProvenanceWriteError(f"Unknown provenance stage '{entry.stage}'.")
        if entry.status not in EntryStatus.ALL:
            raise ProvenanceWriteError(f"Unknown provenance status '{entry.status}'.")

        pending = replace(
            entry,
            sequence=0,
            recorded_at=datetime.now(tz=timezone.utc),
            parameters=MappingProxyType(copy.deepcopy(dict(entry.parameters))),
            input_refs=tuple(entry.input_refs),
            errors=tuple(entry.errors),
        )
        try:
            stored = self._sink.append(pending)
        except ProvenanceWriteError:
            raise
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "provenance_write_failed",
                dataset_id=pending.dataset_id,
                stage=pending.stage,
                error=str(exc),
            )
            raise ProvenanceWriteError(
                f"Could not record {pending.stage} entry for dataset {pending.dataset_id}.",
                errors=[str(exc)],
                dataset_id=pending.dataset_id,
            ) from exc

        log_event(
            logger,
            logging.DEBUG,
            "provenance_recorded",
            dataset_id=stored.dataset_id,
            stage=stored.stage,
            status=stored.status,
            sequence=stored.sequence,
        )
        return stored

    def query(
        self,
        dataset_id: str,
        *,
        stage: str | Iterable[str] | None = None,
        status: str | Iterable[str] | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[ProvenanceEntry]:
        """
        Entries for ``dataset_id`` in ledger order, optionally filtered by
        stage, status and an inclusive recorded_at range.
        """

        return self._sink.query(
            dataset_id,
            stages=_as_tuple(stage),
            statuses=_as_tuple(status),
            since=_as_utc(since),
            until=_as_utc(until),
        )

    def latest(self, dataset_id: str, stage: str) -> ProvenanceEntry | None:
        entries = self.query(dataset_id, stage=stage)
        return entries[-1] if entries else None
