from __future__ import annotations

import json
import sqlite3
from typing import Any

from db.errors import DuplicateId
from db.errors import ValidationError


def parse_governor_id(raw: Any) -> int:
    text = str(raw if raw is not None else "").strip().strip('"')
    if not text:
        raise ValidationError("Governor ID is required.")
    # Spreadsheet exports sometimes render integer ids as "12345.0".
    if text.endswith(".0") and text[:-2].isdigit():
        text = text[:-2]
    if not text.isdigit():
        raise ValidationError(f"Invalid governor ID `{raw}`; expected a positive whole number.")
    value = int(text)
    if value <= 0:
        raise ValidationError(f"Invalid governor ID `{raw}`; expected a positive whole number.")
    return value


def _load_names(raw: str | None) -> list[str]:
    try:
        names = json.loads(raw) if raw else []
    except ValueError:
        return []
    if not isinstance(names, list):
        return []
    return [str(n) for n in names if str(n or "").strip()]


def _row_to_account(row: tuple | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {
        "governor_id": int(row[0]),
        "governor_name": str(row[1]),
        "old_governor_names": _load_names(row[2]),
    }


def _clean_name(governor_name: str) -> str:
    name = " ".join(str(governor_name or "").split())
    if not name:
        raise ValidationError("Governor name is required.")
    return name


def find_account_sync(conn: sqlite3.Connection, governor_id: int) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT GovernorId, GovernorName, OldGovernorNames
        FROM Accounts
        WHERE GovernorId = ?
        LIMIT 1
        """,
        (int(governor_id),),
    )
    return _row_to_account(cur.fetchone())


def create_account_sync(
    conn: sqlite3.Connection,
    *,
    governor_id: int,
    governor_name: str,
    commit: bool = True,
) -> dict[str, Any]:
    name = _clean_name(governor_name)
    gid = int(governor_id)
    if find_account_sync(conn, gid) is not None:
        raise DuplicateId(gid)
    try:
        conn.execute(
            "INSERT INTO Accounts (GovernorId, GovernorName, OldGovernorNames) VALUES (?, ?, '[]')",
            (gid, name),
        )
        if commit:
            conn.commit()
    except sqlite3.IntegrityError as exc:
        conn.rollback()
        raise DuplicateId(gid) from exc
    return {"governor_id": gid, "governor_name": name, "old_governor_names": []}


def upsert_account_sync(
    conn: sqlite3.Connection,
    *,
    governor_id: int,
    governor_name: str,
    commit: bool = True,
) -> tuple[dict[str, Any], bool]:
    """Insert the account or refresh its name. Returns (account, created).

    A changed name pushes the previous one onto OldGovernorNames so renames
    stay searchable. With commit=False the caller owns the transaction.
    """
    name = _clean_name(governor_name)
    gid = int(governor_id)
    existing = find_account_sync(conn, gid)
    if existing is None:
        return create_account_sync(conn, governor_id=gid, governor_name=name, commit=commit), True

    if existing["governor_name"] == name:
        return existing, False

    old_names = list(existing["old_governor_names"])
    if existing["governor_name"] not in old_names:
        old_names.append(existing["governor_name"])
    conn.execute(
        "UPDATE Accounts SET GovernorName = ?, OldGovernorNames = ? WHERE GovernorId = ?",
        (name, json.dumps(old_names, ensure_ascii=False), gid),
    )
    if commit:
        conn.commit()
    return {"governor_id": gid, "governor_name": name, "old_governor_names": old_names}, False

