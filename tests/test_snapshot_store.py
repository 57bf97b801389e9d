from __future__ import annotations

import pytest

from app.domain.readiness import ScoreSnapshot
from readiness.errors import ConcurrentUpdateError
from readiness.store import ScoreSnapshotStore


def _snapshot(version: int, config_id: str = "cfg") -> ScoreSnapshot:
    return ScoreSnapshot(
        dataset_id="ds",
        config_id=config_id,
        version=version,
        results=(),
        explanations=(),
        rescaled=(),
    )


class TestScoreSnapshotStore:
    def test_commit_and_history(self) -> None:
        store = ScoreSnapshotStore()

        store.commit(_snapshot(1, "first"), expected_version=0)
        store.commit(_snapshot(2, "second"), expected_version=1)

        assert store.current("ds").config_id == "second"
        assert store.current_version("ds") == 2
        assert [s.config_id for s in store.history("ds")] == ["first", "second"]

    def test_empty_store(self) -> None:
        store = ScoreSnapshotStore()

        assert store.current("ds") is None
        assert store.current_version("ds") == 0
        assert store.history("ds") == ()

    def test_stale_version_is_rejected(self) -> None:
        store = ScoreSnapshotStore()
        store.commit(_snapshot(1), expected_version=0)

        with pytest.raises(ConcurrentUpdateError) as excinfo:
            store.commit(_snapshot(1, "late"), expected_version=0)

        assert excinfo.value.dataset_id == "ds"
        assert store.current("ds").config_id == "cfg"

    def test_failing_before_swap_commits_nothing(self) -> None:
        store = ScoreSnapshotStore()

        def fail() -> None:
            raise RuntimeError("ledger down")

        with pytest.raises(RuntimeError):
            store.commit(_snapshot(1), expected_version=0, before_swap=fail)

        assert store.current("ds") is None
        assert store.history("ds") == ()
