from __future__ import annotations

import csv
import io
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from accounts.store import parse_governor_id
from config.defaults import REQUIRED_IMPORT_COLUMNS
from db.errors import ValidationError
from stats.store import STAT_COLUMNS

VALUE_TYPES = {"int", "float", "bool", "text"}

SNAPSHOT_TIME_FORMATS = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
)

_TRUE = {"true", "yes", "y", "1"}
_FALSE = {"false", "no", "n", "0"}

# AccountStats columns are sqlite INTEGERs (signed 64-bit).
_INT_MAX = 2**63 - 1


@dataclass(slots=True)
class StatsColumnMap:
    version: str = "stats_columns_v1"
    governor_id: str = REQUIRED_IMPORT_COLUMNS[0]
    governor_name: str = REQUIRED_IMPORT_COLUMNS[1]
    snapshot_time: str = REQUIRED_IMPORT_COLUMNS[2]
    # snapshot field -> (csv header, value type)
    fields: dict[str, tuple[str, str]] = field(default_factory=dict)

    @property
    def required_headers(self) -> list[str]:
        return [self.governor_id, self.governor_name, self.snapshot_time]


@dataclass(slots=True)
class StatsImportRow:
    line: int
    governor_id: int
    governor_name: str
    snapshot_time: datetime
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RowError:
    line: int
    governor_id: str
    message: str


@dataclass(slots=True)
class ParsedStatsCsv:
    rows: list[StatsImportRow] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    missing_columns: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.rows) + len(self.errors)


_DEFAULT_FIELDS: dict[str, tuple[str, str]] = {
    "ch": ("CH", "int"),
    "domain": ("Domain", "float"),
    "clickable": ("Clickable", "bool"),
    "alliance": ("Alliance", "text"),
    "power": ("Power", "int"),
    "highest_power": ("Highest Power", "float"),
    "troop_power": ("Troop Power", "float"),
    "victory": ("Victory", "float"),
    "defeat": ("Defeat", "float"),
    "helps": ("Helps", "float"),
    "scout_times": ("Scout Times", "float"),
    "gathered": ("Gathered", "float"),
    "assistance": ("Assistance", "float"),
    "total_kill_points": ("Total Kill Points", "float"),
    "total_kills": ("Total Kills", "float"),
    "t1_kills": ("T1", "int"),
    "t2_kills": ("T2", "int"),
    "t3_kills": ("T3", "int"),
    "t4_kills": ("T4", "int"),
    "t5_kills": ("T5", "int"),
    "ranged_kills": ("Ranged", "float"),
    "dead": ("Dead", "float"),
    "healed": ("Healed", "float"),
    "most_units_killed": ("Most Units Killed", "float"),
    "most_units_lost": ("Most Units Lost", "float"),
    "most_units_healed": ("Most Units Healed", "float"),
    "autarch": ("Autarch", "float"),
    "participated": ("Participated", "float"),
    "civilization": ("Civilization", "text"),
}


def default_stats_columns() -> StatsColumnMap:
    return StatsColumnMap(fields=dict(_DEFAULT_FIELDS))


def load_stats_columns(path: str | Path | None) -> tuple[StatsColumnMap, str | None]:
    """
    Returns (column_map, warning_message). warning_message is None on clean load.
    """
    defaults = default_stats_columns()
    if not path:
        return (defaults, "Stats column map path missing; using built-in defaults.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Stats column map not found at {p}; using built-in defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read stats column map from {p}: {exc}; using built-in defaults.")

    if not isinstance(payload, dict) or not isinstance(payload.get("fields"), dict):
        return (defaults, f"Invalid stats column map format in {p}; using built-in defaults.")

    fields: dict[str, tuple[str, str]] = {}
    skipped: list[str] = []
    for name, entry in payload["fields"].items():
        key = str(name or "").strip()
        if key not in STAT_COLUMNS or not isinstance(entry, dict):
            skipped.append(key)
            continue
        header = str(entry.get("header") or "").strip()
        value_type = str(entry.get("type") or "text").strip().lower()
        if not header or value_type not in VALUE_TYPES:
            skipped.append(key)
            continue
        fields[key] = (header, value_type)

    required = payload.get("required") if isinstance(payload.get("required"), dict) else {}
    column_map = StatsColumnMap(
        version=str(payload.get("version") or defaults.version),
        governor_id=str(required.get("governor_id") or defaults.governor_id),
        governor_name=str(required.get("governor_name") or defaults.governor_name),
        snapshot_time=str(required.get("snapshot_time") or defaults.snapshot_time),
        fields=fields or defaults.fields,
    )
    if skipped:
        return (column_map, f"Ignored invalid stats column entries in {p}: {', '.join(skipped)}")
    return (column_map, None)


def decode_csv_bytes(data: bytes) -> str:
    # utf-8-sig strips the BOM that spreadsheet exports like to add
    return data.decode("utf-8-sig", errors="replace")


def _header_key(header: str) -> str:
    return " ".join(str(header or "").split()).lower()


def parse_snapshot_time(raw: str, *, now: datetime | None = None) -> datetime:
    text = str(raw or "").strip()
    if not text:
        return now or datetime.now(timezone.utc)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = None
        for fmt in SNAPSHOT_TIME_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        if parsed is None:
            raise ValidationError(f"invalid snapshot time `{raw}`")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _number_text(raw: str) -> str:
    return raw.replace(",", "").replace("_", "").strip()


def coerce_value(raw: Any, value_type: str) -> Any:
    if raw is None:
        return None
    text = str(raw).strip()
    if not text or text.lower() in {"null", "none", "n/a", "-"}:
        return None
    if value_type == "text":
        return text
    if value_type == "bool":
        low = text.lower()
        if low in _TRUE:
            return True
        if low in _FALSE:
            return False
        raise ValueError(f"expected true/false, got `{text}`")
    if value_type == "int":
        digits = _number_text(text)
        try:
            number = int(digits)
        except ValueError:
            try:
                exact = Decimal(digits)
            except InvalidOperation as exc:
                raise ValueError(f"expected a whole number, got `{text}`") from exc
            if not exact.is_finite() or exact != exact.to_integral_value():
                raise ValueError(f"expected a whole number, got `{text}`")
            number = int(exact)
        if abs(number) > _INT_MAX:
            raise ValueError(f"whole number out of range: `{text}`")
        return number
    if value_type == "float":
        number = float(_number_text(text))
        if not math.isfinite(number):
            raise ValueError(f"expected a finite number, got `{text}`")
        return number
    raise ValueError(f"unsupported value type `{value_type}`")


def parse_stats_csv(
    text: str,
    *,
    columns: StatsColumnMap | None = None,
    now: datetime | None = None,
) -> ParsedStatsCsv:
    column_map = columns or default_stats_columns()
    reader = csv.DictReader(io.StringIO((text or "").lstrip("\ufeff")))
    out = ParsedStatsCsv()

    if not reader.fieldnames:
        out.missing_columns = list(column_map.required_headers)
        return out

    # Case- and whitespace-insensitive header lookup.
    headers = {_header_key(h): h for h in reader.fieldnames if isinstance(h, str)}
    out.missing_columns = [h for h in column_map.required_headers if _header_key(h) not in headers]
    if out.missing_columns:
        return out

    def cell(row: dict, header: str) -> str:
        name = headers.get(_header_key(header))
        return "" if name is None else str(row.get(name) or "")

    import_time = now or datetime.now(timezone.utc)
    for row in reader:
        if not any(str(v or "").strip() for v in row.values() if not isinstance(v, list)):
            continue
        line = int(reader.line_num)
        raw_id = cell(row, column_map.governor_id).strip()
        problems: list[str] = []

        governor_id = 0
        try:
            governor_id = parse_governor_id(raw_id)
        except ValidationError as exc:
            problems.append(str(exc))

        governor_name = " ".join(cell(row, column_map.governor_name).split())
        if not governor_name:
            problems.append("missing governor name")

        snapshot_time = import_time
        try:
            snapshot_time = parse_snapshot_time(cell(row, column_map.snapshot_time), now=import_time)
        except ValidationError as exc:
            problems.append(str(exc))

        values: dict[str, Any] = {}
        for field_name, (header, value_type) in column_map.fields.items():
            try:
                values[field_name] = coerce_value(cell(row, header), value_type)
            except ValueError as exc:
                problems.append(f"{header}: {exc}")

        if problems:
            out.errors.append(RowError(line=line, governor_id=raw_id or "?", message="; ".join(problems)))
            continue
        out.rows.append(
            StatsImportRow(
                line=line,
                governor_id=governor_id,
                governor_name=governor_name,
                snapshot_time=snapshot_time,
                fields=values,
            )
        )
    return out
