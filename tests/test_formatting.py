from __future__ import annotations

import unittest

from ingestion.csv_import import RowError
from ingestion.service import ImportResult
from links.service import LinkBatchResult
from misc.formatting import add_delimiter
from misc.formatting import chunk_text
from misc.formatting import format_farms
from misc.formatting import format_help
from misc.formatting import format_import_result
from misc.formatting import format_link_result
from misc.formatting import format_owners
from misc.formatting import format_stats


class FormattingTests(unittest.TestCase):
    def test_add_delimiter(self):
        self.assertEqual(add_delimiter(None), "N/A")
        self.assertEqual(add_delimiter(1234567), "1,234,567")
        self.assertEqual(add_delimiter(1234567.0), "1,234,567")
        self.assertEqual(add_delimiter(1234.5), "1,234.50")
        self.assertEqual(add_delimiter(True), "Yes")
        self.assertEqual(add_delimiter("ABC"), "ABC")

    def test_chunk_text_splits_long_replies(self):
        text = "\n".join(f"- line {i} " + "x" * 40 for i in range(100))
        chunks = chunk_text(text, limit=500)
        self.assertGreater(len(chunks), 1)
        self.assertTrue(all(len(c) <= 500 for c in chunks))
        self.assertEqual(chunk_text("short"), ["short"])

    def test_link_result_lists_every_bucket(self):
        result = LinkBatchResult(
            main_id=9,
            main_name="Main Nine",
            linked=[(2, "B")],
            already_linked=[(3, 1)],
            unknown=[4],
            rejected=[(9, "Governor 9 cannot be linked to itself.")],
        )
        text = format_link_result(result, invalid_tokens=["abc"])
        self.assertIn("Linked 1 farm account(s) to main account Main Nine (ID: 9):", text)
        self.assertIn("- Farm Governor: B (ID: 2)", text)
        self.assertIn("- ID: abc", text)
        self.assertIn("- ID: 4", text)
        self.assertIn("Already linked to Main Governor ID: 1", text)
        self.assertIn("cannot be linked to itself", text)

    def test_farms_and_owners(self):
        self.assertIn("No farm accounts found", format_farms(9, []))
        self.assertIn("- Farm Governor ID: 2, Name: B", format_farms(9, [(2, "B")]))

        farm = {"governor_id": 2, "governor_name": "B", "old_governor_names": []}
        self.assertIn("is not linked as a farm account", format_owners(farm, []))
        text = format_owners(farm, [(9, "Main Nine")])
        self.assertIn("- Main Governor ID: 9", text)
        self.assertIn("Main Governor Name: Main Nine", text)

    def test_stats_card(self):
        snapshot = {
            "governor_id": 9,
            "governor_name": "Old Nine",
            "snapshot_time": "2025-03-05T09:15:00+00:00",
            "alliance": "ABC",
            "power": 12345678,
            "t5_kills": None,
        }
        account = {"governor_id": 9, "governor_name": "Main Nine", "old_governor_names": ["Old Nine"]}
        text = format_stats(account, snapshot, [(2, "B")])
        self.assertIn("Name: Main Nine", text)
        self.assertIn("- Power: 12,345,678", text)
        self.assertIn("- T5 Kills: N/A", text)
        self.assertIn("Alliance: ABC", text)
        self.assertIn("- Farm Governor ID: 2, Name: B", text)

    def test_import_summary_caps_errors(self):
        result = ImportResult(
            total=30,
            added=2,
            updated=1,
            failed=27,
            errors=[RowError(line=i, governor_id=str(i), message="bad") for i in range(27)],
        )
        text = format_import_result(result, max_errors=5)
        self.assertIn("- Failed: 27", text)
        self.assertIn("- Row 4, Governor ID 4: bad", text)
        self.assertNotIn("- Row 5,", text)
        self.assertIn("...and 22 more", text)

    def test_help_shows_import_guide_to_officers_only(self):
        member_text = format_help("!", show_import_guide=False, import_role_names=("R4",))
        officer_text = format_help("!", show_import_guide=True, import_role_names=("R4", "King"))
        self.assertIn("!governor link", member_text)
        self.assertNotIn("CSV Import Guide", member_text)
        self.assertIn("CSV Import Guide", officer_text)
        self.assertIn("`King`", officer_text)


if __name__ == "__main__":
    unittest.main()
