from __future__ import annotations

import hashlib
import importlib.util
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from types import ModuleType


MIGRATION_RE = re.compile(r"^(\d{4})_([a-zA-Z0-9_]+)\.py$")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _checksum_file(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def _ensure_migration_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            checksum TEXT NOT NULL,
            applied_at_utc TEXT NOT NULL
        )
        """
    )
    conn.commit()


def _load_applied(conn: sqlite3.Connection) -> dict[str, tuple[str, str]]:
    cur = conn.cursor()
    cur.execute("SELECT version, name, checksum FROM schema_migrations")
    return {str(version): (str(name), str(checksum)) for version, name, checksum in cur.fetchall()}


def _discover(migrations_dir: str | Path) -> list[tuple[str, str, Path]]:
    base = Path(migrations_dir)
    if not base.exists():
        raise RuntimeError(f"Migrations directory not found: {migrations_dir}")
    found: list[tuple[str, str, Path]] = []
    for p in sorted(base.iterdir()):
        if not p.is_file():
            continue
        m = MIGRATION_RE.match(p.name)
        if m:
            found.append((m.group(1), m.group(2), p))
    return found


def _load_module(path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"governor_migration_{path.stem}", str(path))
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Could not load migration module: {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def apply_sqlite_migrations(conn: sqlite3.Connection, migrations_dir: str | Path) -> list[str]:
    """Apply every pending migration in version order and return the applied labels.

    A version that was already applied must still match its recorded name and
    checksum; edited history is refused rather than silently re-run.
    """
    _ensure_migration_table(conn)
    applied = _load_applied(conn)
    newly_applied: list[str] = []

    for version, name, path in _discover(migrations_dir):
        checksum = _checksum_file(path)
        existing = applied.get(version)
        if existing:
            old_name, old_checksum = existing
            if old_name != name or old_checksum != checksum:
                raise RuntimeError(
                    f"Migration version {version} already applied with different content "
                    f"(existing name={old_name}, file name={name})."
                )
            continue

        upgrade = getattr(_load_module(path), "upgrade", None)
        if not callable(upgrade):
            raise RuntimeError(f"Python migration missing upgrade(conn): {path}")

        print(f"[DB] Applying migration {version}_{name}")
        try:
            upgrade(conn)
        except Exception:
            conn.rollback()
            print(f"[DB] Migration {version}_{name} failed; rolled back")
            raise

        conn.execute(
            """
            INSERT INTO schema_migrations (version, name, checksum, applied_at_utc)
            VALUES (?, ?, ?, ?)
            """,
            (version, name, checksum, _utc_now_iso()),
        )
        conn.commit()
        newly_applied.append(f"{version}_{name}")

    return newly_applied


def rollback_last_migration(conn: sqlite3.Connection, migrations_dir: str | Path) -> str | None:
    _ensure_migration_table(conn)
    cur = conn.cursor()
    cur.execute("SELECT version, name FROM schema_migrations ORDER BY version DESC LIMIT 1")
    row = cur.fetchone()
    if row is None:
        return None
    version, name = str(row[0]), str(row[1])

    path = Path(migrations_dir) / f"{version}_{name}.py"
    if not path.exists():
        raise RuntimeError(f"Migration file for applied version {version}_{name} not found")
    downgrade = getattr(_load_module(path), "downgrade", None)
    if not callable(downgrade):
        raise RuntimeError(f"Migration {version}_{name} has no downgrade(conn)")

    print(f"[DB] Rolling back migration {version}_{name}")
    try:
        downgrade(conn)
    except Exception:
        conn.rollback()
        print(f"[DB] Rollback of {version}_{name} failed")
        raise
    conn.execute("DELETE FROM schema_migrations WHERE version = ?", (version,))
    conn.commit()
    return f"{version}_{name}"


def list_schema_migrations_sync(conn: sqlite3.Connection, limit: int = 200) -> list[tuple[str, str, str]]:
    cur = conn.cursor()
    try:
        cur.execute(
            """
            SELECT version, name, applied_at_utc
            FROM schema_migrations
            ORDER BY version DESC
            LIMIT ?
            """,
            (max(1, min(int(limit), 500)),),
        )
        return cur.fetchall()
    except sqlite3.OperationalError:
        return []
