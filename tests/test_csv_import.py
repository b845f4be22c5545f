from __future__ import annotations

import os
import tempfile
import unittest
from datetime import datetime, timezone

from config.defaults import DEFAULT_STATS_COLUMNS_PATH
from db.errors import ValidationError
from ingestion.csv_import import coerce_value
from ingestion.csv_import import decode_csv_bytes
from ingestion.csv_import import default_stats_columns
from ingestion.csv_import import load_stats_columns
from ingestion.csv_import import parse_snapshot_time
from ingestion.csv_import import parse_stats_csv

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class CsvImportParsingTests(unittest.TestCase):
    def test_parses_rows_with_case_insensitive_headers(self):
        text = (
            "governor id,GOVERNOR NAME,Snapshot  Time (UTC),Power,T5,Clickable,Alliance\n"
            '101,Alpha,2025-03-05 09:15:00,"1,234,567",12,yes,ABC\n'
        )
        parsed = parse_stats_csv(text, now=NOW)

        self.assertEqual(parsed.missing_columns, [])
        self.assertEqual(parsed.errors, [])
        self.assertEqual(parsed.total, 1)
        row = parsed.rows[0]
        self.assertEqual(row.line, 2)
        self.assertEqual(row.governor_id, 101)
        self.assertEqual(row.governor_name, "Alpha")
        self.assertEqual(row.snapshot_time, datetime(2025, 3, 5, 9, 15, tzinfo=timezone.utc))
        self.assertEqual(row.fields["power"], 1234567)
        self.assertEqual(row.fields["t5_kills"], 12)
        self.assertIs(row.fields["clickable"], True)
        self.assertEqual(row.fields["alliance"], "ABC")
        self.assertIsNone(row.fields["dead"])

    def test_missing_required_columns_are_reported(self):
        parsed = parse_stats_csv("Governor ID,Power\n1,5\n", now=NOW)
        self.assertEqual(parsed.missing_columns, ["Governor Name", "Snapshot Time (UTC)"])
        self.assertEqual(parsed.rows, [])

        parsed = parse_stats_csv("", now=NOW)
        self.assertEqual(len(parsed.missing_columns), 3)

    def test_bad_rows_are_collected_without_stopping_the_rest(self):
        text = (
            "Governor ID,Governor Name,Snapshot Time (UTC),Power\n"
            "abc,Broken,2025-03-05,10\n"
            "\n"
            "102,,2025-03-05,10\n"
            "103,Gamma,not a date,lots\n"
            "104,Delta,,20\n"
        )
        parsed = parse_stats_csv(text, now=NOW)

        self.assertEqual([r.governor_id for r in parsed.rows], [104])
        self.assertEqual(parsed.rows[0].snapshot_time, NOW)
        self.assertEqual([e.governor_id for e in parsed.errors], ["abc", "102", "103"])
        self.assertIn("missing governor name", parsed.errors[1].message)
        self.assertIn("invalid snapshot time", parsed.errors[2].message)
        self.assertIn("Power", parsed.errors[2].message)
        self.assertEqual(parsed.total, 4)

    def test_bom_is_stripped(self):
        raw = "\ufeffGovernor ID,Governor Name,Snapshot Time (UTC)\n5,Echo,2025-01-01T00:00:00Z\n".encode("utf-8")
        parsed = parse_stats_csv(decode_csv_bytes(raw), now=NOW)
        self.assertEqual(parsed.missing_columns, [])
        self.assertEqual(parsed.rows[0].governor_id, 5)

        parsed = parse_stats_csv(raw.decode("utf-8"), now=NOW)
        self.assertEqual(parsed.missing_columns, [])

    def test_snapshot_time_formats(self):
        expected = datetime(2025, 3, 5, 9, 15, tzinfo=timezone.utc)
        for raw in (
            "2025-03-05T09:15:00Z",
            "2025-03-05 09:15:00",
            "2025-03-05T11:15:00+02:00",
            "03/05/2025 09:15",
        ):
            with self.subTest(raw=raw):
                self.assertEqual(parse_snapshot_time(raw, now=NOW), expected)
        self.assertEqual(parse_snapshot_time("  ", now=NOW), NOW)
        with self.assertRaises(ValidationError):
            parse_snapshot_time("soon", now=NOW)

    def test_coerce_value(self):
        self.assertIsNone(coerce_value("", "int"))
        self.assertIsNone(coerce_value("N/A", "float"))
        self.assertEqual(coerce_value("1,000", "int"), 1000)
        self.assertEqual(coerce_value("12.0", "int"), 12)
        self.assertEqual(coerce_value("2.75", "float"), 2.75)
        self.assertIs(coerce_value("No", "bool"), False)
        self.assertEqual(coerce_value(" Rome ", "text"), "Rome")
        with self.assertRaises(ValueError):
            coerce_value("12.5", "int")
        with self.assertRaises(ValueError):
            coerce_value("maybe", "bool")

    def test_large_whole_numbers_stay_exact(self):
        self.assertEqual(coerce_value("9007199254740993", "int"), 2**53 + 1)
        self.assertEqual(coerce_value("9,007,199,254,740,993", "int"), 2**53 + 1)
        self.assertEqual(coerce_value("9007199254740993.0", "int"), 2**53 + 1)
        self.assertEqual(coerce_value("-42", "int"), -42)
        with self.assertRaises(ValueError):
            coerce_value(str(2**63), "int")

    def test_non_finite_numbers_are_rejected(self):
        for raw in ("nan", "inf", "-Infinity"):
            with self.subTest(raw=raw):
                with self.assertRaises(ValueError):
                    coerce_value(raw, "float")
                with self.assertRaises(ValueError):
                    coerce_value(raw, "int")

    def test_non_finite_cell_becomes_a_row_error(self):
        parsed = parse_stats_csv(
            "Governor ID,Governor Name,Snapshot Time (UTC),Domain\n1,Alpha,2025-01-01,nan\n",
            now=NOW,
        )
        self.assertEqual(parsed.rows, [])
        self.assertIn("Domain", parsed.errors[0].message)


class StatsColumnMapTests(unittest.TestCase):
    def test_default_column_map_path_does_not_depend_on_cwd(self):
        self.assertTrue(os.path.isabs(DEFAULT_STATS_COLUMNS_PATH))
        self.assertTrue(os.path.exists(DEFAULT_STATS_COLUMNS_PATH))
        _columns, warning = load_stats_columns(DEFAULT_STATS_COLUMNS_PATH)
        self.assertIsNone(warning)

    def test_repo_column_map_loads_cleanly(self):
        path = os.path.join(os.getcwd(), "config", "stats_columns.yaml")
        columns, warning = load_stats_columns(path)
        self.assertIsNone(warning)
        self.assertEqual(set(columns.fields), set(default_stats_columns().fields))

    def test_missing_file_falls_back_to_defaults(self):
        columns, warning = load_stats_columns("/nonexistent/stats_columns.yaml")
        self.assertIn("not found", warning)
        self.assertEqual(columns.fields, default_stats_columns().fields)

    def test_custom_headers_and_invalid_entries(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "cols.yaml")
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(
                    "version: custom_v2\n"
                    "required:\n"
                    "  governor_id: ID\n"
                    "fields:\n"
                    "  power:\n"
                    "    header: Current Power\n"
                    "    type: int\n"
                    "  mana:\n"
                    "    header: Mana\n"
                    "    type: int\n"
                )
            columns, warning = load_stats_columns(path)

        self.assertIn("mana", warning)
        self.assertEqual(columns.version, "custom_v2")
        self.assertEqual(columns.fields, {"power": ("Current Power", "int")})

        parsed = parse_stats_csv(
            "ID,Governor Name,Snapshot Time (UTC),Current Power\n9,Nine,2025-01-01,77\n",
            columns=columns,
            now=NOW,
        )
        self.assertEqual(parsed.rows[0].governor_id, 9)
        self.assertEqual(parsed.rows[0].fields, {"power": 77})


if __name__ == "__main__":
    unittest.main()
