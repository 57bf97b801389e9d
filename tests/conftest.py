"""
Shared fixtures for readiness tests.

Two-region table used throughout:

    A: 100 beds, 80 occupied, 20 available, 50 staff, equipment 8,
       population 1,000,000, budget 500,000
    B:  50 beds, 10 occupied, 40 available, 10 staff, equipment 4,
       population 2,000,000, budget 100,000
"""

from __future__ import annotations

import pytest

from app.domain.readiness import RawTable
from app.services.readiness_service import ReadinessService
from readiness.weights import build_weight_config

HEADERS = (
    "region",
    "total_beds",
    "occupied_beds",
    "available_beds",
    "staff_count",
    "equipment_score",
    "population",
    "budget_allocation",
)

ROW_A = ("A", 100, 80, 20, 50, 8, 1_000_000, 500_000)
ROW_B = ("B", 50, 10, 40, 10, 4, 2_000_000, 100_000)


def make_table(*rows, headers=HEADERS) -> RawTable:
    return RawTable(headers=tuple(headers), rows=tuple(tuple(row) for row in rows))


@pytest.fixture()
def example_table() -> RawTable:
    return make_table(ROW_A, ROW_B)


@pytest.fixture()
def example_weights():
    """utilization, availability and equipment weighted equally; others 0."""
    return build_weight_config(
        {"utilizationRate": 1, "availabilityIndex": 1, "equipmentIndex": 1},
        config_id="cfg-equal",
    )


@pytest.fixture()
def service() -> ReadinessService:
    return ReadinessService()
