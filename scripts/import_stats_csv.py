"""Import a governor stats CSV straight into the database, without Discord.

Run from the repository root:

    python -m scripts.import_stats_csv path/to/export.csv --db governor_tracker.db
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from config.defaults import DEFAULT_DB_PATH
from config.defaults import DEFAULT_STATS_COLUMNS_PATH
from db.errors import GovernorError
from db.storage import connect_sqlite
from ingestion.csv_import import decode_csv_bytes
from ingestion.csv_import import load_stats_columns
from ingestion.csv_import import parse_stats_csv
from ingestion.service import import_parsed_sync
from misc.formatting import format_import_result


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Import governor stats from a CSV export")
    p.add_argument("csv_path", help="CSV file to import")
    p.add_argument(
        "--db",
        default=os.getenv("GOVERNOR_DB_PATH", DEFAULT_DB_PATH),
        help=f"SQLite path (default: $GOVERNOR_DB_PATH or {DEFAULT_DB_PATH})",
    )
    p.add_argument(
        "--columns",
        default=os.getenv("GOVERNOR_STATS_COLUMNS_PATH", DEFAULT_STATS_COLUMNS_PATH),
        help="YAML header map for stat columns",
    )
    p.add_argument("--dry-run", action="store_true", help="Parse and validate only; write nothing")
    p.add_argument("--max-errors", type=int, default=50)
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    columns, warning = load_stats_columns(args.columns)
    if warning:
        print(f"[CFG] {warning}")

    text = decode_csv_bytes(Path(args.csv_path).read_bytes())
    parsed = parse_stats_csv(text, columns=columns)
    if parsed.missing_columns:
        print(f"[Import] Missing required columns: {', '.join(parsed.missing_columns)}")
        return 2

    if args.dry_run:
        print(f"[Import] dry run: {len(parsed.rows)} valid row(s), {len(parsed.errors)} invalid row(s)")
        for err in parsed.errors[: args.max_errors]:
            print(f"- Row {err.line}, Governor ID {err.governor_id}: {err.message}")
        return 0 if not parsed.errors else 1

    conn = connect_sqlite(args.db)
    try:
        result = import_parsed_sync(conn, parsed)
    except GovernorError as exc:
        print(f"[Import] aborted: {exc}")
        return 2
    finally:
        conn.close()

    print(format_import_result(result, max_errors=args.max_errors))
    return 0 if result.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
