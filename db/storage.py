from __future__ import annotations

import asyncio
import os
import sqlite3
from pathlib import Path
from typing import Any, Callable

from db.errors import StorageUnavailable
from db.migrate import apply_sqlite_migrations

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def connect_sqlite(db_path: str, *, migrations_dir: str | Path | None = None) -> sqlite3.Connection:
    # check_same_thread=False because discord.py event loop + to_thread usage
    conn = sqlite3.connect(db_path, check_same_thread=False)
    cur = conn.cursor()
    if db_path != ":memory:":
        cur.execute("PRAGMA journal_mode=WAL;")
        cur.execute("PRAGMA synchronous=NORMAL;")
    cur.execute("PRAGMA foreign_keys=ON;")
    apply_sqlite_migrations(conn, migrations_dir or DEFAULT_MIGRATIONS_DIR)
    conn.commit()
    return conn


class StorageContext:
    """Owns the sqlite connection and the lock that serialises access to it.

    Built once at startup and handed to every component that touches the
    database. Store functions stay synchronous (``fn(conn, ...)``); ``run``
    executes them on a worker thread while holding the lock, so two commands
    can never interleave a check-then-write sequence on the same connection.
    """

    def __init__(self, conn: sqlite3.Connection, *, default_timeout: float | None = None) -> None:
        self.conn = conn
        self.lock = asyncio.Lock()
        self.default_timeout = default_timeout
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self, fn: Callable[..., Any], *args, timeout: float | None = None, **kwargs) -> Any:
        if self._closed:
            raise StorageUnavailable("Storage connection is closed.")
        limit = self.default_timeout if timeout is None else timeout
        name = getattr(fn, "__name__", repr(fn))

        await self.lock.acquire()
        task = asyncio.ensure_future(asyncio.to_thread(fn, self.conn, *args, **kwargs))
        try:
            done, _pending = await asyncio.wait({task}, timeout=None if limit is None else float(limit))
        except BaseException:
            task.add_done_callback(self._release_after)
            raise
        if not done:
            # The worker thread still owns the connection; hold the lock until it finishes.
            task.add_done_callback(self._release_after)
            print(f"[DB] {name} timed out after {limit}s")
            raise StorageUnavailable(f"Storage call timed out after {limit}s.")
        self.lock.release()

        try:
            return task.result()
        except sqlite3.IntegrityError:
            raise
        except (sqlite3.OperationalError, sqlite3.DatabaseError, sqlite3.ProgrammingError) as exc:
            print(f"[DB] {name} failed: {exc}")
            raise StorageUnavailable(f"Storage unavailable: {exc}") from exc

    def _release_after(self, task: asyncio.Future) -> None:
        if not task.cancelled() and task.exception() is not None:
            print(f"[DB] abandoned storage call failed: {task.exception()}")
        self.lock.release()

    async def close(self) -> None:
        if self._closed:
            return
        async with self.lock:
            self._closed = True
            await asyncio.to_thread(self.conn.close)
        print("[DB] Storage connection closed")


def open_storage(
    db_path: str,
    *,
    default_timeout: float | None = None,
    migrations_dir: str | Path | None = None,
) -> StorageContext:
    print(f"[DB] Using DB_PATH={db_path}")
    print(f"[DB] DB file exists? {db_path != ':memory:' and os.path.exists(db_path)}")
    try:
        conn = connect_sqlite(db_path, migrations_dir=migrations_dir)
    except sqlite3.DatabaseError as exc:
        raise StorageUnavailable(f"Could not open database at {db_path}: {exc}") from exc
    return StorageContext(conn, default_timeout=default_timeout)
