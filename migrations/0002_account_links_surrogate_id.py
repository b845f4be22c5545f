from __future__ import annotations

import sqlite3


def _columns(cur: sqlite3.Cursor, table: str) -> list[str]:
    cur.execute(f"PRAGMA table_info({table})")
    return [str(r[1]) for r in cur.fetchall()]


def _has_table(cur: sqlite3.Cursor, table: str) -> bool:
    cur.execute("SELECT 1 FROM sqlite_master WHERE type='table' AND name=? LIMIT 1", (table,))
    return cur.fetchone() is not None


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    if not _has_table(cur, "AccountLinks"):
        raise RuntimeError('Could not find the "AccountLinks" table. Please check your database.')

    if "Id" not in _columns(cur, "AccountLinks"):
        # DDL is not rolled back on failure, so clear any half-finished earlier attempt.
        cur.execute("DROP TABLE IF EXISTS AccountLinks_rebuild")
        cur.execute(
            """
            CREATE TABLE AccountLinks_rebuild (
                Id INTEGER PRIMARY KEY AUTOINCREMENT,
                MainGovernorId INTEGER NOT NULL,
                FarmGovernorId INTEGER NOT NULL,
                CONSTRAINT unique_farm_governor UNIQUE (FarmGovernorId),
                CONSTRAINT fk_main_governor FOREIGN KEY (MainGovernorId)
                    REFERENCES Accounts (GovernorId) ON DELETE NO ACTION ON UPDATE NO ACTION,
                CONSTRAINT fk_farm_governor FOREIGN KEY (FarmGovernorId)
                    REFERENCES Accounts (GovernorId) ON DELETE NO ACTION ON UPDATE NO ACTION
            )
            """
        )
        cur.execute("SELECT COUNT(*) FROM AccountLinks")
        legacy_count = int(cur.fetchone()[0])

        # Farm uniqueness did not exist before; keep the earliest link per farm.
        # Links pointing at missing accounts cannot satisfy the new foreign keys.
        cur.execute(
            """
            INSERT INTO AccountLinks_rebuild (MainGovernorId, FarmGovernorId)
            SELECT MainGovernorId, FarmGovernorId
            FROM AccountLinks
            WHERE rowid IN (
                SELECT MIN(rowid) FROM AccountLinks GROUP BY FarmGovernorId
            )
              AND MainGovernorId IN (SELECT GovernorId FROM Accounts)
              AND FarmGovernorId IN (SELECT GovernorId FROM Accounts)
            ORDER BY rowid ASC
            """
        )
        kept = int(cur.rowcount or 0)
        if kept != legacy_count:
            print(
                f"[DB] AccountLinks rebuild dropped {legacy_count - kept} link(s) "
                "(farm already linked to another main, or account missing)"
            )
        cur.execute("DROP TABLE AccountLinks")
        cur.execute("ALTER TABLE AccountLinks_rebuild RENAME TO AccountLinks")
    else:
        cur.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS unique_farm_governor ON AccountLinks (FarmGovernorId)"
        )

    cur.execute("CREATE INDEX IF NOT EXISTS idx_main_governor ON AccountLinks (MainGovernorId)")
    conn.commit()
