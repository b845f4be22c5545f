from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from accounts.store import create_account_sync
from db.errors import UnknownAccount
from db.errors import ValidationError
from db.storage import connect_sqlite
from stats.store import STAT_COLUMNS
from stats.store import get_snapshot_sync
from stats.store import latest_snapshot_sync
from stats.store import normalize_snapshot_time
from stats.store import upsert_snapshot_sync

T0 = datetime(2025, 3, 5, 9, 15, tzinfo=timezone.utc)


class StatsStoreTests(unittest.TestCase):
    def setUp(self):
        self.conn = connect_sqlite(":memory:")
        create_account_sync(self.conn, governor_id=11, governor_name="Eleven")

    def tearDown(self):
        self.conn.close()

    def _count(self) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM AccountStats WHERE GovernorId = 11")
        return int(cur.fetchone()[0])

    def test_snapshot_round_trip(self):
        fields = {"power": 1_250_000, "alliance": "ABC", "clickable": True, "domain": 2.5}
        snapshot_id, created = upsert_snapshot_sync(
            self.conn, governor_id=11, governor_name="Eleven", snapshot_time=T0, fields=fields
        )
        self.assertTrue(created)

        snap = get_snapshot_sync(self.conn, 11, T0)
        self.assertEqual(snap["id"], snapshot_id)
        self.assertEqual(snap["snapshot_time"], "2025-03-05T09:15:00+00:00")
        self.assertEqual(snap["power"], 1_250_000)
        self.assertEqual(snap["alliance"], "ABC")
        self.assertIs(snap["clickable"], True)
        self.assertEqual(snap["domain"], 2.5)
        self.assertIsNone(snap["t5_kills"])
        self.assertEqual(set(STAT_COLUMNS) - set(snap), set())

    def test_same_key_overwrites_instead_of_duplicating(self):
        first_id, _ = upsert_snapshot_sync(
            self.conn, governor_id=11, governor_name="Eleven", snapshot_time=T0, fields={"power": 1, "dead": 5}
        )
        second_id, created = upsert_snapshot_sync(
            self.conn, governor_id=11, governor_name="Eleven Renamed", snapshot_time=T0, fields={"power": 2}
        )
        self.assertFalse(created)
        self.assertEqual(first_id, second_id)
        self.assertEqual(self._count(), 1)

        snap = latest_snapshot_sync(self.conn, 11)
        self.assertEqual(snap["power"], 2)
        self.assertIsNone(snap["dead"])
        self.assertEqual(snap["governor_name"], "Eleven Renamed")

    def test_equivalent_times_share_a_key(self):
        upsert_snapshot_sync(self.conn, governor_id=11, governor_name="Eleven", snapshot_time=T0)
        upsert_snapshot_sync(
            self.conn,
            governor_id=11,
            governor_name="Eleven",
            snapshot_time=T0.astimezone(timezone(timedelta(hours=2))),
        )
        upsert_snapshot_sync(self.conn, governor_id=11, governor_name="Eleven", snapshot_time="2025-03-05 09:15:00")
        self.assertEqual(self._count(), 1)

    def test_sub_second_times_are_distinct_keys(self):
        early = T0.replace(microsecond=200_000)
        late = T0.replace(microsecond=700_000)
        upsert_snapshot_sync(self.conn, governor_id=11, governor_name="Eleven", snapshot_time=early, fields={"power": 1})
        upsert_snapshot_sync(self.conn, governor_id=11, governor_name="Eleven", snapshot_time=late, fields={"power": 2})
        upsert_snapshot_sync(self.conn, governor_id=11, governor_name="Eleven", snapshot_time=T0, fields={"power": 0})

        self.assertEqual(self._count(), 3)
        self.assertEqual(get_snapshot_sync(self.conn, 11, early)["power"], 1)
        self.assertEqual(latest_snapshot_sync(self.conn, 11)["power"], 2)
        self.assertEqual(normalize_snapshot_time(T0), "2025-03-05T09:15:00+00:00")
        self.assertEqual(normalize_snapshot_time(late), "2025-03-05T09:15:00.700000+00:00")

    def test_latest_snapshot_picks_newest_time(self):
        upsert_snapshot_sync(
            self.conn, governor_id=11, governor_name="Eleven", snapshot_time=T0 + timedelta(days=1), fields={"power": 20}
        )
        upsert_snapshot_sync(self.conn, governor_id=11, governor_name="Eleven", snapshot_time=T0, fields={"power": 10})
        self.assertEqual(latest_snapshot_sync(self.conn, 11)["power"], 20)

    def test_latest_snapshot_tie_breaks_on_insert_order(self):
        # Rows written by an older schema could carry the same time twice.
        self.conn.execute("DROP INDEX IF EXISTS ux_account_stats_governor_snapshot")
        for power in (1, 2):
            self.conn.execute(
                "INSERT INTO AccountStats (GovernorId, GovernorName, SnapshotTime, Power) VALUES (11, 'Eleven', ?, ?)",
                (normalize_snapshot_time(T0), power),
            )
        self.conn.commit()
        self.assertEqual(latest_snapshot_sync(self.conn, 11)["power"], 2)

    def test_latest_snapshot_absent(self):
        self.assertIsNone(latest_snapshot_sync(self.conn, 11))
        self.assertIsNone(latest_snapshot_sync(self.conn, 404))

    def test_unknown_account_is_rejected(self):
        with self.assertRaises(UnknownAccount):
            upsert_snapshot_sync(self.conn, governor_id=404, governor_name="Ghost", snapshot_time=T0)
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM AccountStats")
        self.assertEqual(cur.fetchone()[0], 0)

    def test_unknown_fields_and_bad_times_are_rejected(self):
        with self.assertRaises(ValidationError):
            upsert_snapshot_sync(
                self.conn, governor_id=11, governor_name="Eleven", snapshot_time=T0, fields={"mana": 3}
            )
        with self.assertRaises(ValidationError):
            upsert_snapshot_sync(self.conn, governor_id=11, governor_name="Eleven", snapshot_time="yesterday")
        self.assertEqual(self._count(), 0)


if __name__ == "__main__":
    unittest.main()
