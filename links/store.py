from __future__ import annotations

import sqlite3
from typing import Any

from accounts.store import find_account_sync
from db.errors import CannotFarmAMain
from db.errors import CannotMainAFarm
from db.errors import FarmAlreadyLinked
from db.errors import GovernorError
from db.errors import SelfLink
from db.errors import UnknownAccount


def _begin_immediate(conn: sqlite3.Connection) -> None:
    # IMMEDIATE takes the write lock up front, so no other connection can
    # slip a conflicting link in between our checks and the insert.
    if conn.in_transaction:
        conn.commit()
    conn.execute("BEGIN IMMEDIATE")


def _owner_of_farm(cur: sqlite3.Cursor, farm_id: int) -> int | None:
    cur.execute(
        "SELECT MainGovernorId FROM AccountLinks WHERE FarmGovernorId = ? ORDER BY Id ASC LIMIT 1",
        (int(farm_id),),
    )
    row = cur.fetchone()
    return int(row[0]) if row else None


def _is_main(cur: sqlite3.Cursor, governor_id: int) -> bool:
    cur.execute("SELECT 1 FROM AccountLinks WHERE MainGovernorId = ? LIMIT 1", (int(governor_id),))
    return cur.fetchone() is not None


def _is_farm(cur: sqlite3.Cursor, governor_id: int) -> bool:
    cur.execute("SELECT 1 FROM AccountLinks WHERE FarmGovernorId = ? LIMIT 1", (int(governor_id),))
    return cur.fetchone() is not None


def check_link_allowed_sync(conn: sqlite3.Connection, *, main_id: int, farm_id: int) -> None:
    """Raise the first rule a (main, farm) link would break; return None if it is allowed.

    Rule order: both accounts exist, no self link, farm not owned yet,
    farm is not a main, main is not a farm.
    """
    main = int(main_id)
    farm = int(farm_id)
    if find_account_sync(conn, main) is None:
        raise UnknownAccount(main, f"Main governor with ID {main} does not exist.")
    if find_account_sync(conn, farm) is None:
        raise UnknownAccount(farm, f"Farm governor with ID {farm} does not exist.")
    if main == farm:
        raise SelfLink(main)

    cur = conn.cursor()
    owner = _owner_of_farm(cur, farm)
    if owner is not None:
        raise FarmAlreadyLinked(farm, owner)
    if _is_main(cur, farm):
        raise CannotFarmAMain(farm)
    if _is_farm(cur, main):
        raise CannotMainAFarm(main)


def create_link_sync(conn: sqlite3.Connection, *, main_id: int, farm_id: int) -> dict[str, Any]:
    main = int(main_id)
    farm = int(farm_id)
    _begin_immediate(conn)
    try:
        check_link_allowed_sync(conn, main_id=main, farm_id=farm)
        cur = conn.cursor()
        cur.execute(
            "INSERT INTO AccountLinks (MainGovernorId, FarmGovernorId) VALUES (?, ?)",
            (main, farm),
        )
        link_id = int(cur.lastrowid)
        conn.commit()
    except GovernorError:
        conn.rollback()
        raise
    except sqlite3.IntegrityError:
        # A storage constraint or trigger fired underneath us; report it in
        # the same vocabulary as the explicit checks when one of them applies.
        conn.rollback()
        check_link_allowed_sync(conn, main_id=main, farm_id=farm)
        raise
    except BaseException:
        conn.rollback()
        raise

    print(f"[Links] linked farm={farm} -> main={main} (link_id={link_id})")
    return {"id": link_id, "main_governor_id": main, "farm_governor_id": farm}


def remove_links_sync(conn: sqlite3.Connection, *, main_id: int, farm_ids: set[int] | list[int]) -> int:
    ids = sorted({int(f) for f in farm_ids or []})
    if not ids:
        return 0
    placeholders = ",".join("?" for _ in ids)
    cur = conn.cursor()
    cur.execute(
        f"DELETE FROM AccountLinks WHERE MainGovernorId = ? AND FarmGovernorId IN ({placeholders})",
        (int(main_id), *ids),
    )
    removed = int(cur.rowcount or 0)
    conn.commit()
    if removed:
        print(f"[Links] unlinked {removed} farm(s) from main={int(main_id)}")
    return removed


def list_farms_sync(conn: sqlite3.Connection, main_id: int) -> list[tuple[int, str]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT l.FarmGovernorId, COALESCE(a.GovernorName, 'Unknown')
        FROM AccountLinks AS l
        LEFT JOIN Accounts AS a ON a.GovernorId = l.FarmGovernorId
        WHERE l.MainGovernorId = ?
        ORDER BY l.Id ASC
        """,
        (int(main_id),),
    )
    return [(int(gid), str(name)) for gid, name in cur.fetchall()]


def find_owners_sync(conn: sqlite3.Connection, farm_id: int) -> list[tuple[int, str]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT l.MainGovernorId, COALESCE(a.GovernorName, 'Unknown')
        FROM AccountLinks AS l
        LEFT JOIN Accounts AS a ON a.GovernorId = l.MainGovernorId
        WHERE l.FarmGovernorId = ?
        ORDER BY l.Id ASC
        """,
        (int(farm_id),),
    )
    return [(int(gid), str(name)) for gid, name in cur.fetchall()]
