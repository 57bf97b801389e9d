from __future__ import annotations

import unittest

from app.domain.readiness import CANONICAL_FIELDS
from app.mappers.field_mapper import FieldMapper, canonical_metric_name, normalize_header


class TestFieldMapper(unittest.TestCase):
    def setUp(self) -> None:
        self.mapper = FieldMapper()

    def test_resolves_canonical_headers(self) -> None:
        mapping = self.mapper.resolve(list(CANONICAL_FIELDS))

        self.assertTrue(mapping.is_complete)
        self.assertEqual(mapping.source_for("total_beds"), "total_beds")

    def test_resolves_camel_case_and_aliases(self) -> None:
        headers = [
            "Region Name",
            "totalBeds",
            "Occupied Beds",
            "beds_available",
            "Staff",
            "equipmentScore",
            "Population",
            "Budget",
        ]

        mapping = self.mapper.resolve(headers)

        self.assertTrue(mapping.is_complete)
        self.assertEqual(mapping.source_for("region"), "Region Name")
        self.assertEqual(mapping.source_for("available_beds"), "beds_available")
        self.assertEqual(mapping.source_for("staff_count"), "Staff")
        self.assertEqual(mapping.source_for("budget_allocation"), "Budget")

    def test_reports_unknown_duplicate_and_missing_columns(self) -> None:
        headers = [
            "region",
            "total_beds",
            "beds",
            "occupied_beds",
            "available_beds",
            "staff_count",
            "equipment_score",
            "hospital_rating",
        ]

        mapping = self.mapper.resolve(headers)

        codes = [issue.code for issue in mapping.issues]
        self.assertFalse(mapping.is_complete)
        self.assertIn("duplicate_column", codes)
        self.assertIn("unknown_column", codes)
        missing = {issue.canonical_field for issue in mapping.issues if issue.code == "missing_column"}
        self.assertEqual(missing, {"population", "budget_allocation"})

    def test_custom_aliases_replace_defaults(self) -> None:
        mapper = FieldMapper(aliases={"region": ("county",)})

        self.assertEqual(mapper.canonical_field("County"), "region")
        self.assertIsNone(mapper.canonical_field("district"))


class TestMetricNames(unittest.TestCase):
    def test_normalize_header_drops_case_and_punctuation(self) -> None:
        self.assertEqual(normalize_header("  Total-Beds "), "totalbeds")

    def test_canonical_metric_name_accepts_spellings(self) -> None:
        for name in ("utilizationRate", "Utilization Rate", "utilization_rate"):
            self.assertEqual(canonical_metric_name(name), "utilization_rate")
        self.assertIsNone(canonical_metric_name("readiness"))


if __name__ == "__main__":
    unittest.main()
