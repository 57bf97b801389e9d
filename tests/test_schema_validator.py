from __future__ import annotations

import unittest

import pandas as pd

from app.domain.readiness import RawTable
from app.validators.schema_validator import SchemaValidator, coerce_table
from conftest import HEADERS, ROW_A, ROW_B, make_table
from readiness.errors import DuplicateKeyError, SchemaError, SizeError


def _rows(count: int) -> list[tuple]:
    return [(f"R{i}", 10, 5, 5, 3, 6, 1000, 5000) for i in range(count)]


class TestSchemaValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = SchemaValidator()

    def test_valid_table_builds_dataset_in_input_order(self) -> None:
        dataset = self.validator.validate(make_table(ROW_A, ROW_B), dataset_id="ds-1")

        self.assertEqual(dataset.dataset_id, "ds-1")
        self.assertEqual(dataset.row_count, 2)
        self.assertEqual([row.row_number for row in dataset.rows], [1, 2])
        self.assertEqual(dataset.rows[1].get("region"), "B")
        self.assertEqual(dataset.source_headers, HEADERS)

    def test_generates_dataset_id_when_missing(self) -> None:
        dataset = self.validator.validate(make_table(ROW_A))

        self.assertTrue(dataset.dataset_id)

    def test_rejects_seven_columns(self) -> None:
        table = make_table(ROW_A[:7], headers=HEADERS[:7])

        with self.assertRaises(SchemaError) as ctx:
            self.validator.validate(table, dataset_id="ds-7")

        self.assertEqual(ctx.exception.dataset_id, "ds-7")
        self.assertIn("Expected 8 columns", ctx.exception.message)

    def test_rejects_unknown_header(self) -> None:
        headers = (*HEADERS[:7], "hospital_rating")

        with self.assertRaises(SchemaError) as ctx:
            self.validator.validate(make_table(ROW_A, headers=headers))

        self.assertTrue(any("hospital_rating" in error for error in ctx.exception.errors))

    def test_rejects_empty_table(self) -> None:
        with self.assertRaises(SizeError):
            self.validator.validate(make_table())

    def test_rejects_more_than_1000_rows(self) -> None:
        with self.assertRaises(SizeError) as ctx:
            self.validator.validate(make_table(*_rows(1200)))

        self.assertIn("1200", ctx.exception.message)

    def test_accepts_exactly_1000_rows(self) -> None:
        dataset = self.validator.validate(make_table(*_rows(1000)))

        self.assertEqual(dataset.row_count, 1000)

    def test_configured_limit_never_exceeds_hard_cap(self) -> None:
        validator = SchemaValidator(max_rows=5000)

        with self.assertRaises(SizeError):
            validator.validate(make_table(*_rows(1001)))

    def test_lower_configured_limit_applies(self) -> None:
        validator = SchemaValidator(max_rows=2)

        with self.assertRaises(SizeError):
            validator.validate(make_table(*_rows(3)))

    def test_rejects_ragged_rows(self) -> None:
        with self.assertRaises(SchemaError) as ctx:
            self.validator.validate(make_table(ROW_A, ROW_B[:6]))

        self.assertEqual(ctx.exception.errors, ("row 2: expected 8 values, got 6",))

    def test_rejects_duplicate_regions_case_insensitively(self) -> None:
        with self.assertRaises(DuplicateKeyError) as ctx:
            self.validator.validate(make_table(ROW_A, (" a ", *ROW_B[1:])))

        self.assertIn("duplicates row 1", ctx.exception.errors[0])

    def test_blank_regions_are_not_duplicates(self) -> None:
        dataset = self.validator.validate(make_table(("", *ROW_A[1:]), (None, *ROW_B[1:])))

        self.assertEqual(dataset.row_count, 2)


class TestCoerceTable(unittest.TestCase):
    def test_dataframe_nan_becomes_none(self) -> None:
        frame = pd.DataFrame([ROW_A, (*ROW_B[:3], float("nan"), *ROW_B[4:])], columns=list(HEADERS))

        table = coerce_table(frame)

        self.assertEqual(table.headers, HEADERS)
        self.assertIsNone(table.rows[1][3])
        self.assertEqual(table.rows[0][0], "A")

    def test_records_are_read_by_first_record_keys(self) -> None:
        records = [dict(zip(HEADERS, ROW_A)), {"region": "B"}]

        table = coerce_table(records)

        self.assertEqual(table.headers, HEADERS)
        self.assertEqual(table.rows[1][1], None)

    def test_raw_text_is_rejected(self) -> None:
        with self.assertRaises(SchemaError):
            coerce_table("region,total_beds")

    def test_raw_table_passes_through(self) -> None:
        table = RawTable(headers=HEADERS, rows=(ROW_A,))

        self.assertIs(coerce_table(table), table)


if __name__ == "__main__":
    unittest.main()
