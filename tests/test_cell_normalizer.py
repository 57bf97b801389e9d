"""
tests/test_cell_normalizer.py

Cell repair rules: numeric coercion, missing-value policies, range checks,
row exclusion and the quality score.
"""

from __future__ import annotations

import pytest

from app.domain.readiness import Severity
from app.validators.schema_validator import SchemaValidator
from conftest import HEADERS, ROW_A, ROW_B, make_table
from readiness.normalizer import (
    CellNormalizer,
    RejectRowPolicy,
    ZeroFillPolicy,
    coerce_number,
    get_missing_value_policy,
)


def _dataset(*rows, headers=HEADERS):
    return SchemaValidator().validate(make_table(*rows, headers=headers), dataset_id="ds")


@pytest.fixture()
def normalizer() -> CellNormalizer:
    return CellNormalizer()


# ---------------------------------------------------------------------------
# coerce_number
# ---------------------------------------------------------------------------


class TestCoerceNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (12, 12.0),
            (3.5, 3.5),
            (" 42 ", 42.0),
            ("$1,250,000", 1_250_000.0),
            ("€ 99.5", 99.5),
            ("1e3", 1000.0),
        ],
    )
    def test_parses_numbers(self, raw, expected) -> None:
        assert coerce_number(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", "$", True, float("inf"), "NaN", "1.2.3"])
    def test_rejects_non_numbers(self, raw) -> None:
        assert coerce_number(raw) is None


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


class TestMissingValuePolicies:
    def test_lookup_by_name(self) -> None:
        assert isinstance(get_missing_value_policy("zero"), ZeroFillPolicy)
        assert isinstance(get_missing_value_policy("reject"), RejectRowPolicy)

    def test_unknown_policy_raises(self) -> None:
        with pytest.raises(ValueError):
            get_missing_value_policy("interpolate")


# ---------------------------------------------------------------------------
# CellNormalizer
# ---------------------------------------------------------------------------


class TestCellNormalizer:
    def test_clean_rows_pass_with_full_quality(self, normalizer: CellNormalizer) -> None:
        report = normalizer.normalize(_dataset(ROW_A, ROW_B))

        assert [row.region_id for row in report.rows] == ["A", "B"]
        assert report.rows[0].total_beds == 100.0
        assert report.excluded_rows == ()
        assert report.issues == ()
        assert report.quality_score == 1.0

    def test_missing_numeric_defaults_to_zero_with_warning(self, normalizer: CellNormalizer) -> None:
        row = ("C", 10, 5, 5, "", 6, 1000, 5000)

        report = normalizer.normalize(_dataset(ROW_A, row))

        assert len(report.rows) == 2
        assert report.rows[1].staff_count == 0.0
        assert report.warning_count == 1
        assert report.issues[0].column == "staff_count"
        assert report.issues[0].severity == Severity.WARNING
        assert report.quality_score == 1.0

    def test_reject_policy_excludes_row(self) -> None:
        normalizer = CellNormalizer(missing_policy=RejectRowPolicy())
        row = ("C", 10, 5, 5, None, 6, 1000, 5000)

        report = normalizer.normalize(_dataset(ROW_A, row))

        assert [r.region_id for r in report.rows] == ["A"]
        assert report.excluded_rows == (2,)
        assert report.error_count == 1

    def test_unparseable_value_excludes_row(self, normalizer: CellNormalizer) -> None:
        row = ("C", "lots", 5, 5, 3, 6, 1000, 5000)

        report = normalizer.normalize(_dataset(ROW_A, row))

        assert report.excluded_rows == (2,)
        assert report.issues[0].value == "lots"
        assert report.quality_score == pytest.approx(1 - 1 / 16)

    def test_negative_and_out_of_range_values_are_errors(self, normalizer: CellNormalizer) -> None:
        negative = ("C", 10, -1, 5, 3, 6, 1000, 5000)
        too_high = ("D", 10, 5, 5, 3, 11, 1000, 5000)

        report = normalizer.normalize(_dataset(ROW_A, negative, too_high))

        assert report.excluded_rows == (2, 3)
        assert {issue.column for issue in report.issues} == {"occupied_beds", "equipment_score"}

    def test_blank_region_excludes_row(self, normalizer: CellNormalizer) -> None:
        report = normalizer.normalize(_dataset(ROW_A, ("  ", *ROW_B[1:])))

        assert report.excluded_rows == (2,)
        assert report.issues[0].column == "region"
        assert report.issues[0].severity == Severity.ERROR

    def test_currency_strings_are_repaired(self, normalizer: CellNormalizer) -> None:
        row = ("C", "1,000", 500, 500, 30, "7", "250,000", "$2,000,000")

        report = normalizer.normalize(_dataset(row))

        assert report.rows[0].total_beds == 1000.0
        assert report.rows[0].budget_allocation == 2_000_000.0
        assert report.issues == ()

    def test_aliased_headers_are_canonicalized(self, normalizer: CellNormalizer) -> None:
        headers = ("District", "Beds", "Occupied", "Free Beds", "Staff", "Equipment", "Pop", "Budget")

        report = normalizer.normalize(_dataset(ROW_A, headers=headers))

        assert report.rows[0].region_id == "A"
        assert report.rows[0].available_beds == 20.0

    def test_is_deterministic(self, normalizer: CellNormalizer) -> None:
        dataset = _dataset(ROW_A, ROW_B, ("C", "", "x", 5, 3, 6, 1000, 5000))

        assert normalizer.normalize(dataset) == normalizer.normalize(dataset)
