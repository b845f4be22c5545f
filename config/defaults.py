from __future__ import annotations

from pathlib import Path

COMMAND_PREFIX = "!"

DEFAULT_DB_PATH = "governor_tracker.db"
DEFAULT_STATS_COLUMNS_PATH = str(Path(__file__).resolve().parent / "stats_columns.yaml")

# Members holding any of these role names may run `!governor import`.
DEFAULT_IMPORT_ROLE_NAMES = ("R4", "Council", "King")

DEFAULT_STORAGE_TIMEOUT_SECONDS = 15.0

DISCORD_MAX_MESSAGE_LEN = 1900  # keep under 2000 hard limit

REQUIRED_IMPORT_COLUMNS = ("Governor ID", "Governor Name", "Snapshot Time (UTC)")
