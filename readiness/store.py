"""
readiness/store.py

Versioned snapshot store for committed score results.

A Dataset's scores are replaced only by swapping in a complete new
ScoreSnapshot. Commits use optimistic versioning: a snapshot built from
version N commits only while N is still the current version.
"""

from __future__ import annotations

import threading
from typing import Callable

from app.domain.readiness import ScoreSnapshot
from readiness.errors import ConcurrentUpdateError


class ScoreSnapshotStore:
    """
    In-process store of the authoritative snapshot per dataset, plus the
    superseded ones in commit order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: dict[str, ScoreSnapshot] = {}
        self._history: dict[str, list[ScoreSnapshot]] = {}

    def current(self, dataset_id: str) -> ScoreSnapshot | None:
        with self._lock:
            return self._current.get(dataset_id)

    def current_version(self, dataset_id: str) -> int:
        with self._lock:
            snapshot = self._current.get(dataset_id)
            return snapshot.version if snapshot is not None else 0

    def history(self, dataset_id: str) -> tuple[ScoreSnapshot, ...]:
        with self._lock:
            return tuple(self._history.get(dataset_id, ()))

    def commit(
        self,
        snapshot: ScoreSnapshot,
        *,
        expected_version: int,
        before_swap: Callable[[], None] | None = None,
    ) -> ScoreSnapshot:
        """
        Make ``snapshot`` the authoritative result set for its dataset.

        ``before_swap`` runs under the store lock after the version check;
        if it raises, nothing is committed.

        Raises:
            ConcurrentUpdateError: another snapshot was committed since
                ``expected_version`` was read.
        """

        with self._lock:
            existing = self._current.get(snapshot.dataset_id)
            current_version = existing.version if existing is not None else 0
            if current_version != expected_version:
                raise ConcurrentUpdateError(
                    f"Scores for dataset {snapshot.dataset_id} changed while recomputing "
                    f"(expected version {expected_version}, found {current_version}).",
                    dataset_id=snapshot.dataset_id,
                )
            if before_swap is not None:
                before_swap()
            self._current[snapshot.dataset_id] = snapshot
            self._history.setdefault(snapshot.dataset_id, []).append(snapshot)
            return snapshot

