from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any

from accounts.store import find_account_sync
from db.errors import UnknownAccount
from db.errors import ValidationError

# snapshot field -> AccountStats column
STAT_COLUMNS: dict[str, str] = {
    "ch": "CH",
    "domain": "Domain",
    "clickable": "Clickable",
    "alliance": "Alliance",
    "power": "Power",
    "highest_power": "HighestPower",
    "troop_power": "TroopPower",
    "victory": "Victory",
    "defeat": "Defeat",
    "helps": "Helps",
    "scout_times": "ScoutTimes",
    "gathered": "Gathered",
    "assistance": "Assistance",
    "total_kill_points": "TotalKillPoints",
    "total_kills": "TotalKills",
    "t1_kills": "T1Kills",
    "t2_kills": "T2Kills",
    "t3_kills": "T3Kills",
    "t4_kills": "T4Kills",
    "t5_kills": "T5Kills",
    "ranged_kills": "RangedKills",
    "dead": "Dead",
    "healed": "Healed",
    "most_units_killed": "MostUnitsKilled",
    "most_units_lost": "MostUnitsLost",
    "most_units_healed": "MostUnitsHealed",
    "autarch": "Autarch",
    "participated": "Participated",
    "civilization": "Civilization",
}

BOOL_FIELDS = {"clickable"}


def normalize_snapshot_time(value: datetime | str) -> str:
    """UTC ISO-8601 text; naive datetimes are taken to be UTC already.

    Whole seconds render without a fraction and sub-second times keep all six
    digits, so keys still sort chronologically as text.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationError(f"Invalid snapshot time `{value}`.") from exc
    if not isinstance(value, datetime):
        raise ValidationError(f"Invalid snapshot time `{value}`.")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="auto")


def _row_to_snapshot(cols: list[str], row: tuple) -> dict[str, Any]:
    raw = {cols[i]: row[i] for i in range(len(cols))}
    out: dict[str, Any] = {
        "id": int(raw["Id"]),
        "governor_id": int(raw["GovernorId"]),
        "governor_name": str(raw["GovernorName"]),
        "snapshot_time": str(raw["SnapshotTime"]),
    }
    for field_name, column in STAT_COLUMNS.items():
        value = raw.get(column)
        if field_name in BOOL_FIELDS and value is not None:
            value = bool(value)
        out[field_name] = value
    return out


def upsert_snapshot_sync(
    conn: sqlite3.Connection,
    *,
    governor_id: int,
    governor_name: str,
    snapshot_time: datetime | str,
    fields: dict[str, Any] | None = None,
    commit: bool = True,
) -> tuple[int, bool]:
    """Write one snapshot, replacing every stat of an existing (governor, time) row.

    Returns (snapshot_id, created). The account must exist first; imports
    upsert the account before its stats, in the same transaction when they
    pass commit=False.
    """
    values = dict(fields or {})
    unknown = sorted(k for k in values if k not in STAT_COLUMNS)
    if unknown:
        raise ValidationError(f"Unknown snapshot field(s): {', '.join(unknown)}")
    gid = int(governor_id)
    if find_account_sync(conn, gid) is None:
        raise UnknownAccount(gid)
    when = normalize_snapshot_time(snapshot_time)

    params: list[Any] = []
    for field_name in STAT_COLUMNS:
        value = values.get(field_name)
        if field_name in BOOL_FIELDS and value is not None:
            value = 1 if value else 0
        params.append(value)

    cur = conn.cursor()
    cur.execute(
        "SELECT Id FROM AccountStats WHERE GovernorId = ? AND SnapshotTime = ? LIMIT 1",
        (gid, when),
    )
    existing = cur.fetchone()
    if existing is not None:
        assignments = ", ".join(f"{col} = ?" for col in STAT_COLUMNS.values())
        cur.execute(
            f"UPDATE AccountStats SET GovernorName = ?, {assignments} WHERE Id = ?",
            (str(governor_name), *params, int(existing[0])),
        )
        if commit:
            conn.commit()
        return int(existing[0]), False

    columns = ", ".join(STAT_COLUMNS.values())
    placeholders = ", ".join("?" for _ in STAT_COLUMNS)
    cur.execute(
        f"""
        INSERT INTO AccountStats (GovernorId, GovernorName, SnapshotTime, {columns})
        VALUES (?, ?, ?, {placeholders})
        """,
        (gid, str(governor_name), when, *params),
    )
    snapshot_id = int(cur.lastrowid)
    if commit:
        conn.commit()
    return snapshot_id, True


def latest_snapshot_sync(conn: sqlite3.Connection, governor_id: int) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT *
        FROM AccountStats
        WHERE GovernorId = ?
        ORDER BY SnapshotTime DESC, Id DESC
        LIMIT 1
        """,
        (int(governor_id),),
    )
    row = cur.fetchone()
    if row is None:
        return None
    cols = [str(d[0]) for d in (cur.description or ())]
    return _row_to_snapshot(cols, row)


def get_snapshot_sync(conn: sqlite3.Connection, governor_id: int, snapshot_time: datetime | str) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        "SELECT * FROM AccountStats WHERE GovernorId = ? AND SnapshotTime = ? LIMIT 1",
        (int(governor_id), normalize_snapshot_time(snapshot_time)),
    )
    row = cur.fetchone()
    if row is None:
        return None
    cols = [str(d[0]) for d in (cur.description or ())]
    return _row_to_snapshot(cols, row)
