from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS Accounts (
            GovernorId INTEGER PRIMARY KEY,
            GovernorName TEXT NOT NULL,
            OldGovernorNames TEXT NOT NULL DEFAULT '[]'
        )
        """
    )
    # First-generation link table: one row per (main, farm) pair, no surrogate id
    # and no uniqueness on the farm side.
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS AccountLinks (
            MainGovernorId INTEGER NOT NULL REFERENCES Accounts (GovernorId),
            FarmGovernorId INTEGER NOT NULL REFERENCES Accounts (GovernorId),
            PRIMARY KEY (MainGovernorId, FarmGovernorId)
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS AccountStats (
            Id INTEGER PRIMARY KEY AUTOINCREMENT,
            GovernorId INTEGER NOT NULL REFERENCES Accounts (GovernorId),
            GovernorName TEXT NOT NULL,
            SnapshotTime TEXT NOT NULL,
            CH INTEGER,
            Domain REAL,
            Clickable INTEGER,
            Alliance TEXT,
            Power INTEGER,
            HighestPower REAL,
            TroopPower REAL,
            Victory REAL,
            Defeat REAL,
            Helps REAL,
            ScoutTimes REAL,
            Gathered REAL,
            Assistance REAL,
            TotalKillPoints REAL,
            TotalKills REAL,
            T1Kills INTEGER,
            T2Kills INTEGER,
            T3Kills INTEGER,
            T4Kills INTEGER,
            T5Kills INTEGER,
            RangedKills REAL,
            Dead REAL,
            Healed REAL,
            MostUnitsKilled REAL,
            MostUnitsLost REAL,
            MostUnitsHealed REAL,
            Autarch REAL,
            Participated REAL,
            Civilization TEXT
        )
        """
    )
    cur.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS ux_account_stats_governor_snapshot
        ON AccountStats (GovernorId, SnapshotTime)
        """
    )
    conn.commit()
