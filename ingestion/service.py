from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field

from accounts.store import upsert_account_sync
from db.errors import GovernorError
from db.errors import StorageUnavailable
from db.errors import ValidationError
from ingestion.csv_import import ParsedStatsCsv
from ingestion.csv_import import RowError
from ingestion.csv_import import StatsColumnMap
from ingestion.csv_import import StatsImportRow
from ingestion.csv_import import parse_stats_csv
from stats.store import upsert_snapshot_sync


@dataclass(slots=True)
class ImportResult:
    total: int = 0
    added: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[RowError] = field(default_factory=list)


def import_stats_row_sync(conn: sqlite3.Connection, row: StatsImportRow) -> bool:
    """Upsert the account, then its snapshot, as one transaction.

    Returns True when the account was new. A failed snapshot write also undoes
    the account insert or rename.
    """
    if conn.in_transaction:
        conn.commit()
    try:
        _account, created = upsert_account_sync(
            conn,
            governor_id=row.governor_id,
            governor_name=row.governor_name,
            commit=False,
        )
        upsert_snapshot_sync(
            conn,
            governor_id=row.governor_id,
            governor_name=row.governor_name,
            snapshot_time=row.snapshot_time,
            fields=row.fields,
            commit=False,
        )
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    return created


def _start_result(parsed: ParsedStatsCsv) -> ImportResult:
    if parsed.missing_columns:
        raise ValidationError(f"Missing required columns: {', '.join(parsed.missing_columns)}")
    return ImportResult(
        total=parsed.total,
        failed=len(parsed.errors),
        errors=list(parsed.errors),
    )


def _record_failure(result: ImportResult, row: StatsImportRow, exc: Exception) -> None:
    result.failed += 1
    result.errors.append(RowError(line=row.line, governor_id=str(row.governor_id), message=str(exc)))
    print(f"[Import] row {row.line} governor={row.governor_id} failed: {exc}")


def import_parsed_sync(conn: sqlite3.Connection, parsed: ParsedStatsCsv) -> ImportResult:
    result = _start_result(parsed)
    for row in parsed.rows:
        try:
            created = import_stats_row_sync(conn, row)
        except (GovernorError, sqlite3.IntegrityError) as exc:
            _record_failure(result, row, exc)
            continue
        if created:
            result.added += 1
        else:
            result.updated += 1
    return result


async def import_stats_csv(storage, text: str, *, columns: StatsColumnMap | None = None) -> ImportResult:
    """Parse and import a stats CSV row by row; a bad row never stops the rest."""
    parsed = parse_stats_csv(text, columns=columns)
    result = _start_result(parsed)
    for row in parsed.rows:
        try:
            created = await storage.run(import_stats_row_sync, row)
        except StorageUnavailable:
            raise
        except (GovernorError, sqlite3.IntegrityError) as exc:
            _record_failure(result, row, exc)
            continue
        if created:
            result.added += 1
        else:
            result.updated += 1

    print(
        f"[Import] total={result.total} added={result.added} "
        f"updated={result.updated} failed={result.failed}"
    )
    return result
